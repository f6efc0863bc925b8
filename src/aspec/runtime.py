"""Wiring: one settlement strategy and oracle shared by both agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import AspecConfig, load_config
from .decision import DecisionOracle
from .marketing import MarketingAgent
from .oracle import build_oracle
from .procurement import ProcurementAgent
from .resource import ResourceAccessClient, ReceiptPolicy
from .settlement import SettlementOracle, build_settlement


@dataclass
class Runtime:
    config: AspecConfig
    settlement: SettlementOracle
    oracle: DecisionOracle
    resources: ResourceAccessClient
    procurement: ProcurementAgent
    marketing: MarketingAgent

    def reset(self) -> None:
        """Reset daily spend and clear both agents' event logs."""
        for agent in (self.procurement, self.marketing):
            agent.reset_daily_spending()
            agent.clear_events()

    def wallet_balance(self) -> Optional[float]:
        # MockSettlement exposes a property, RpcSettlement queries the chain.
        balance = getattr(self.settlement, "balance", None)
        return balance() if callable(balance) else balance

    def status(self) -> dict:
        return {
            "settlement": type(self.settlement).__name__,
            "wallet_balance": self.wallet_balance(),
            "agents": {
                "procurement": self.procurement.state().to_dict(),
                "marketing": {
                    **self.marketing.state().to_dict(),
                    "active_influencers": len(self.marketing.active_influencers()),
                },
            },
        }


def build_runtime(
    config: Optional[AspecConfig] = None,
    settlement: Optional[SettlementOracle] = None,
    oracle: Optional[DecisionOracle] = None,
    receipt_policy: ReceiptPolicy = ReceiptPolicy.PAY_PER_ACCESS,
) -> Runtime:
    config = config or load_config()
    settlement = settlement or build_settlement(config.settlement)
    oracle = oracle or build_oracle(config.oracle)
    resources = ResourceAccessClient(settlement, receipt_policy=receipt_policy)
    procurement = ProcurementAgent(
        oracle,
        settlement,
        daily_limit=config.procurement.daily_limit_usd,
        max_single_transaction=config.procurement.max_per_tx_usd,
        resources=resources,
    )
    marketing = MarketingAgent(
        oracle,
        settlement,
        daily_limit=config.marketing.daily_limit_usd,
        max_per_post=config.marketing.max_per_tx_usd,
        resources=resources,
    )
    return Runtime(
        config=config,
        settlement=settlement,
        oracle=oracle,
        resources=resources,
        procurement=procurement,
        marketing=marketing,
    )
