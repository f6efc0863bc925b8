"""Procurement agent: buys inventory from suppliers within daily guardrails."""

from __future__ import annotations

from enum import Enum
from typing import Any

from .decision import Decision
from .guardrail import Clamp
from .money import format_usd
from .pipeline import AgentPipeline, AgentResult
from .resource import DEFAULT_AUTO_PAY_LIMIT, ResourceResponse
from .settlement import TransactionResult
from .subjects import SupplierPriceData

SUPPLIER_DATA_RESOURCE = "/api/supplier/data"


class ProcurementEventType(str, Enum):
    ANALYSIS = "analysis"
    DECISION = "decision"
    EXECUTION = "execution"
    ERROR = "error"


class ProcurementAgent(AgentPipeline[SupplierPriceData]):
    kind = "procurement"
    amount_key = "amount"
    activity = "analysis"
    started_event = ProcurementEventType.ANALYSIS
    decision_event = ProcurementEventType.DECISION
    error_event = ProcurementEventType.ERROR
    discovery_event = ProcurementEventType.ANALYSIS

    def __init__(self, oracle, settlement, daily_limit: float = 2000.0, max_single_transaction: float = 500.0, **kwargs):
        super().__init__(oracle, settlement, daily_limit, max_single_transaction, **kwargs)

    def analyze_and_execute(self, price_data: SupplierPriceData) -> AgentResult:
        return self.run(price_data)

    def discover_suppliers(
        self,
        auto_pay_limit: float = DEFAULT_AUTO_PAY_LIMIT,
        already_approved: bool = False,
    ) -> ResourceResponse:
        return self._discover(
            SUPPLIER_DATA_RESOURCE,
            auto_pay_limit,
            already_approved,
            listing_key="suppliers",
            label="supplier",
        )

    def _subject_name(self, subject: SupplierPriceData) -> str:
        return subject.supplier

    def _subject_attributes(self, subject: SupplierPriceData) -> dict[str, Any]:
        return {
            "supplier": subject.supplier,
            "product": subject.product,
            "current_price": subject.current_price,
            "target_price": subject.target_price,
            "historical_prices": list(subject.historical_prices),
        }

    def _destination(self, subject: SupplierPriceData) -> str:
        return subject.supplier_wallet

    def _emit_started(self, subject: SupplierPriceData) -> None:
        self._emit(
            ProcurementEventType.ANALYSIS,
            subject=subject.supplier,
            product=subject.product,
            price=subject.current_price,
            thought=(
                f"Analyzing {subject.product} from {subject.supplier} "
                f"at {format_usd(subject.current_price)}..."
            ),
        )

    def _emit_decision(self, subject: SupplierPriceData, decision: Decision) -> None:
        self._emit(
            ProcurementEventType.DECISION,
            subject=subject.supplier,
            decision=decision,
            thought=decision.reasoning,
        )

    def _on_settled(self, subject: SupplierPriceData, clamp: Clamp, transaction: TransactionResult) -> None:
        self._emit(
            ProcurementEventType.EXECUTION,
            subject=subject.supplier,
            product=subject.product,
            transaction=transaction,
            thought=f"Successfully transferred {format_usd(clamp.amount)} USDC to {subject.supplier}",
        )
