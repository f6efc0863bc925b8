"""
Decision-to-settlement pipeline shared by all agent kinds.

One `run()` is one traversal:

    started event → oracle decision → decision event
      → (not EXECUTE / no amount)            → return decision
      → clamp ≤ 0                            → error event, return decision
      → settle clamped amount
          → success: commit spend, kind-specific events
          → failure: error event, spend untouched

Unexpected exceptions emit an error event and are re-raised as PipelineError.
Clamp, settlement and commit run under the ledger's lock, so concurrent runs
on one agent instance never clamp against stale spend.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Generic, Optional, TypeVar

from .decision import Decision, DecisionContext, DecisionOracle
from .errors import PipelineError
from .events import Event, EventLog, utc_timestamp
from .guardrail import Clamp, GuardrailLedger, GuardrailSnapshot
from .money import format_usd
from .resource import ResourceAccessClient, ResourceResponse
from .settlement import SettlementOracle, TransactionResult

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(frozen=True)
class AgentResult:
    """What a run hands back to its caller."""

    decision: Decision
    transaction: Optional[TransactionResult] = None
    clamp: Optional[Clamp] = None

    @property
    def settled(self) -> bool:
        return self.transaction is not None and self.transaction.success

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"decision": self.decision.to_dict()}
        if self.transaction is not None:
            d["transaction"] = self.transaction.to_dict()
        if self.clamp is not None:
            d["clamped_amount"] = self.clamp.amount
        return d


@dataclass(frozen=True)
class AgentState:
    kind: str
    is_active: bool
    daily_spent: float
    daily_limit: float
    max_per_transaction: float
    last_activity: str
    event_count: int

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "is_active": self.is_active,
            "daily_spent": self.daily_spent,
            "daily_limit": self.daily_limit,
            "max_per_transaction": self.max_per_transaction,
            "last_activity": self.last_activity,
            "event_count": self.event_count,
        }


class AgentPipeline(Generic[S]):
    """Base class for guardrailed agents. Subclasses describe their subject."""

    kind: ClassVar[str]
    amount_key: ClassVar[str]
    activity: ClassVar[str] = "analysis"
    started_event: ClassVar[Enum]
    decision_event: ClassVar[Enum]
    error_event: ClassVar[Enum]
    discovery_event: ClassVar[Enum]
    exhausted_error: ClassVar[str] = "Daily spending limit reached"
    exhausted_thought: ClassVar[str] = "Cannot execute - daily limit would be exceeded."

    def __init__(
        self,
        oracle: DecisionOracle,
        settlement: SettlementOracle,
        daily_limit: float,
        max_per_transaction: float,
        events: Optional[EventLog] = None,
        resources: Optional[ResourceAccessClient] = None,
    ):
        self.oracle = oracle
        self.settlement = settlement
        self.guardrails = GuardrailLedger(daily_limit, max_per_transaction)
        self.events = events if events is not None else EventLog()
        self.resources = resources or ResourceAccessClient(settlement)
        self._active_runs = 0
        self._active_lock = threading.Lock()
        self._last_activity = utc_timestamp()

    # ── Subject hooks ────────────────────────────────────────────

    def _subject_name(self, subject: S) -> str:
        raise NotImplementedError

    def _subject_attributes(self, subject: S) -> dict[str, Any]:
        raise NotImplementedError

    def _destination(self, subject: S) -> str:
        raise NotImplementedError

    def _emit_started(self, subject: S) -> None:
        raise NotImplementedError

    def _emit_decision(self, subject: S, decision: Decision) -> None:
        raise NotImplementedError

    def _on_settled(self, subject: S, clamp: Clamp, transaction: TransactionResult) -> None:
        raise NotImplementedError

    def _on_settlement_failed(self, subject: S, clamp: Clamp, transaction: TransactionResult) -> None:
        self._emit(
            self.error_event,
            subject=self._subject_name(subject),
            transaction=transaction,
            error=transaction.error_reason,
            thought=f"Transaction failed: {transaction.error_reason}",
        )

    # ── Pipeline ─────────────────────────────────────────────────

    def run(self, subject: S) -> AgentResult:
        self._enter()
        try:
            stage = self.activity
            try:
                self._emit_started(subject)
                stage = "decision"
                context = DecisionContext(
                    kind=self.kind,
                    subject=self._subject_attributes(subject),
                    guardrails=self.guardrails.snapshot(),
                )
                decision = self.oracle.decide(context)
                self._emit_decision(subject, decision)

                proposed = decision.proposed_amount(self.amount_key) if decision.is_execute else None
                if proposed is None:
                    return AgentResult(decision)

                with self.guardrails.hold():
                    stage = "guardrail"
                    clamp = self.guardrails.clamp(proposed)
                    if not clamp.allowed:
                        logger.warning(
                            "%s: proposal %s for %s rejected, budget exhausted",
                            self.kind,
                            format_usd(proposed),
                            self._subject_name(subject),
                        )
                        self._emit(
                            self.error_event,
                            subject=self._subject_name(subject),
                            error=self.exhausted_error,
                            thought=self.exhausted_thought,
                        )
                        return AgentResult(decision, clamp=clamp)

                    stage = "settlement"
                    transaction = self.settlement.transfer(self._destination(subject), clamp.amount)
                    if transaction.success:
                        stage = "commit"
                        self.guardrails.commit(clamp)
                        logger.info(
                            "%s: settled %s to %s (%s)",
                            self.kind,
                            format_usd(clamp.amount),
                            self._subject_name(subject),
                            transaction.reference,
                        )
                        self._on_settled(subject, clamp, transaction)
                    else:
                        logger.warning(
                            "%s: settlement to %s failed: %s",
                            self.kind,
                            self._subject_name(subject),
                            transaction.error_reason,
                        )
                        self._on_settlement_failed(subject, clamp, transaction)

                return AgentResult(decision, transaction=transaction, clamp=clamp)

            except Exception as e:
                logger.exception("%s pipeline failed during %s", self.kind, stage)
                self._emit(
                    self.error_event,
                    subject=self._subject_name(subject),
                    error=str(e),
                    thought=f"Error during {self.activity}: {e}",
                )
                raise PipelineError(self.kind, stage, str(e), subject=self._subject_name(subject)) from e
        finally:
            self._exit()

    def _discover(
        self,
        resource_id: str,
        auto_pay_limit: float,
        already_approved: bool,
        listing_key: str,
        label: str,
    ) -> ResourceResponse:
        """Fetch a paid listing through the resource protocol, narrating it."""
        self._enter()
        try:
            self._emit(
                self.discovery_event,
                thought=f"Querying {label} database via x402 protocol...",
            )
            response = self.resources.fetch_resource(
                resource_id,
                auto_pay_limit=auto_pay_limit,
                already_approved=already_approved,
            )
            if response.success:
                listing = response.payload.get(listing_key, []) if isinstance(response.payload, dict) else []
                thought = f"Retrieved {len(listing)} {label} profiles"
            elif response.payment_requirement is not None:
                thought = (
                    f"x402 payment required: {format_usd(response.payment_requirement.amount_due)}"
                    f" ({response.error})"
                )
            else:
                thought = f"x402 request failed: {response.error}"
            self._emit(
                self.discovery_event,
                resource=response,
                error=None if response.success else response.error,
                thought=thought,
            )
            return response
        finally:
            self._exit()

    # ── State & events ───────────────────────────────────────────

    def _enter(self) -> None:
        with self._active_lock:
            self._active_runs += 1

    def _exit(self) -> None:
        with self._active_lock:
            self._active_runs -= 1

    @property
    def is_active(self) -> bool:
        with self._active_lock:
            return self._active_runs > 0

    def _emit(self, event_type: Enum, **payload: Any) -> Event:
        event = self.events.emit(event_type, **payload)
        self._last_activity = event.timestamp
        return event

    def state(self) -> AgentState:
        snap = self.guardrails.snapshot()
        return AgentState(
            kind=self.kind,
            is_active=self.is_active,
            daily_spent=snap.daily_spent,
            daily_limit=snap.daily_limit,
            max_per_transaction=snap.max_per_transaction,
            last_activity=self._last_activity,
            event_count=len(self.events),
        )

    def guardrail_snapshot(self) -> GuardrailSnapshot:
        return self.guardrails.snapshot()

    def subscribe(self, listener: Callable[[Event], None]) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def recent_events(self, count: int = 10) -> list[Event]:
        return self.events.recent(count)

    def clear_events(self) -> None:
        self.events.clear()

    def reset_daily_spending(self) -> None:
        self.guardrails.reset()

    def update_guardrails(
        self,
        daily_limit: Optional[float] = None,
        max_per_transaction: Optional[float] = None,
    ) -> None:
        self.guardrails.update_limits(daily_limit, max_per_transaction)
