"""
aspec — Guardrailed spending for autonomous commerce agents.

Recommendation in, bounded payment out:
Oracle decides → Guardrail clamps → Wallet settles → Every step audited.
"""

__version__ = "0.1.0"

from .decision import Action, Decision, DecisionContext, DecisionOracle, parse_decision
from .events import Event, EventLog, EventPayload
from .guardrail import Clamp, GuardrailLedger, GuardrailSnapshot
from .marketing import MarketingAgent, MarketingEventType
from .oracle import LLMDecisionOracle, RuleBasedOracle
from .pipeline import AgentPipeline, AgentResult, AgentState
from .procurement import ProcurementAgent, ProcurementEventType
from .resource import (
    PaymentReceipt,
    PaymentRequirement,
    PriceTable,
    PriceTier,
    ReceiptPolicy,
    ResourceAccessClient,
    ResourceErrorCode,
    ResourceResponse,
)
from .settlement import MockSettlement, RpcSettlement, SettlementOracle, TransactionResult
from .subjects import InfluencerData, SupplierPriceData

__all__ = [
    "Action", "Decision", "DecisionContext", "DecisionOracle", "parse_decision",
    "Event", "EventLog", "EventPayload",
    "Clamp", "GuardrailLedger", "GuardrailSnapshot",
    "AgentPipeline", "AgentResult", "AgentState",
    "ProcurementAgent", "ProcurementEventType", "MarketingAgent", "MarketingEventType",
    "LLMDecisionOracle", "RuleBasedOracle",
    "PaymentReceipt", "PaymentRequirement", "PriceTable", "PriceTier", "ReceiptPolicy",
    "ResourceAccessClient", "ResourceErrorCode", "ResourceResponse",
    "MockSettlement", "RpcSettlement", "SettlementOracle", "TransactionResult",
    "InfluencerData", "SupplierPriceData",
]
