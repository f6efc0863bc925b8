"""
Guardrail ledger: per-agent daily budget and per-transaction ceiling.

Amounts are held as integer micro-dollars so the clamp is exact. The ledger
never decides on its own when a day ends; `reset()` is triggered externally.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .errors import BudgetExhaustedError
from .money import (
    amount_usd_to_micros,
    format_usd_from_micros,
    limit_usd_to_micros,
    micros_to_usd_float,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailSnapshot:
    """Point-in-time view of a ledger, handed to the decision oracle."""

    daily_spent: float
    daily_limit: float
    max_per_transaction: float

    @property
    def remaining(self) -> float:
        return max(0.0, round(self.daily_limit - self.daily_spent, 6))

    def to_dict(self) -> dict:
        return {
            "daily_spent": self.daily_spent,
            "daily_limit": self.daily_limit,
            "max_per_transaction": self.max_per_transaction,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class Clamp:
    """Outcome of clamping a proposed amount against the ledger."""

    proposed_micros: int
    amount_micros: int

    @property
    def allowed(self) -> bool:
        return self.amount_micros > 0

    @property
    def proposed(self) -> float:
        return micros_to_usd_float(self.proposed_micros)

    @property
    def amount(self) -> float:
        return micros_to_usd_float(self.amount_micros)

    @property
    def was_reduced(self) -> bool:
        return self.amount_micros < self.proposed_micros


class GuardrailLedger:
    """
    Running spend state for one agent instance.

    `daily_spent` only grows through `commit()` and only shrinks through
    `reset()`. Callers that clamp, settle and commit must do so inside
    `hold()` so two runs on the same agent never clamp against stale spend.
    """

    def __init__(
        self,
        daily_limit: float,
        max_per_transaction: float,
        daily_spent: float = 0.0,
    ):
        if daily_limit < 0 or max_per_transaction < 0:
            raise ValueError("Guardrail limits must be non-negative")
        if daily_spent < 0:
            raise ValueError("daily_spent must be non-negative")
        self._daily_limit_micros = limit_usd_to_micros(daily_limit)
        self._max_per_tx_micros = limit_usd_to_micros(max_per_transaction)
        self._daily_spent_micros = amount_usd_to_micros(daily_spent)
        self._lock = threading.RLock()

    @contextmanager
    def hold(self) -> Iterator["GuardrailLedger"]:
        """Serialize a read-clamp-commit sequence on this ledger."""
        with self._lock:
            yield self

    @property
    def daily_spent(self) -> float:
        return micros_to_usd_float(self._daily_spent_micros)

    @property
    def daily_limit(self) -> float:
        return micros_to_usd_float(self._daily_limit_micros)

    @property
    def max_per_transaction(self) -> float:
        return micros_to_usd_float(self._max_per_tx_micros)

    @property
    def remaining_micros(self) -> int:
        return self._daily_limit_micros - self._daily_spent_micros

    def snapshot(self) -> GuardrailSnapshot:
        with self._lock:
            return GuardrailSnapshot(
                daily_spent=self.daily_spent,
                daily_limit=self.daily_limit,
                max_per_transaction=self.max_per_transaction,
            )

    def clamp(self, proposed: float) -> Clamp:
        """min(proposed, max_per_transaction, daily_limit - daily_spent)."""
        proposed_micros = amount_usd_to_micros(proposed)
        with self._lock:
            amount = min(proposed_micros, self._max_per_tx_micros, self.remaining_micros)
        return Clamp(proposed_micros=proposed_micros, amount_micros=amount)

    def commit(self, clamp: Clamp) -> None:
        """Count a settled clamp against the daily budget."""
        with self._lock:
            amount = clamp.amount_micros
            if amount <= 0 or amount > self.remaining_micros:
                raise BudgetExhaustedError(
                    micros_to_usd_float(amount),
                    micros_to_usd_float(max(0, self.remaining_micros)),
                )
            self._daily_spent_micros += amount
            logger.debug(
                "Guardrail commit %s (spent %s of %s)",
                format_usd_from_micros(amount),
                format_usd_from_micros(self._daily_spent_micros),
                format_usd_from_micros(self._daily_limit_micros),
            )

    def reset(self) -> None:
        with self._lock:
            self._daily_spent_micros = 0

    def update_limits(
        self,
        daily_limit: Optional[float] = None,
        max_per_transaction: Optional[float] = None,
    ) -> None:
        """Change limits in place. Spend already committed is kept."""
        with self._lock:
            if daily_limit is not None:
                if daily_limit < 0:
                    raise ValueError("daily_limit must be non-negative")
                self._daily_limit_micros = limit_usd_to_micros(daily_limit)
            if max_per_transaction is not None:
                if max_per_transaction < 0:
                    raise ValueError("max_per_transaction must be non-negative")
                self._max_per_tx_micros = limit_usd_to_micros(max_per_transaction)
