"""Tests for runtime wiring."""

from aspec import catalog
from aspec.config import load_config
from aspec.oracle import RuleBasedOracle
from aspec.resource import ReceiptPolicy
from aspec.runtime import build_runtime
from aspec.settlement import MockSettlement


def _runtime(**kwargs):
    config = load_config({"ASPEC_MOCK_DELAY": "0"})
    return build_runtime(config, **kwargs)


class TestBuildRuntime:
    def test_defaults_are_offline(self):
        runtime = _runtime()
        assert isinstance(runtime.settlement, MockSettlement)
        assert isinstance(runtime.oracle, RuleBasedOracle)
        assert runtime.procurement.guardrail_snapshot().daily_limit == 2000.0
        assert runtime.marketing.guardrail_snapshot().max_per_transaction == 100.0

    def test_agents_share_wallet_and_receipts(self):
        wallet = MockSettlement(balance=1000)
        runtime = _runtime(settlement=wallet, receipt_policy=ReceiptPolicy.REUSE_UNEXPIRED)
        assert runtime.procurement.resources is runtime.marketing.resources
        runtime.marketing.discover_influencers()
        runtime.procurement.analyze_and_execute(catalog.find_supplier("GlobalTextiles Co"))
        assert wallet.balance == 1000 - 5 - 500
        assert runtime.wallet_balance() == 495.0

    def test_budgets_are_per_agent(self):
        runtime = _runtime(settlement=MockSettlement())
        runtime.procurement.analyze_and_execute(catalog.SUPPLIERS[0])
        runtime.marketing.evaluate_and_engage(catalog.INFLUENCERS[0])
        status = runtime.status()
        assert status["settlement"] == "MockSettlement"
        assert status["agents"]["procurement"]["daily_spent"] == 500.0
        assert status["agents"]["marketing"]["daily_spent"] == 50.0
        assert status["agents"]["marketing"]["active_influencers"] == 1

    def test_reset(self):
        runtime = _runtime(settlement=MockSettlement())
        runtime.procurement.analyze_and_execute(catalog.SUPPLIERS[0])
        runtime.reset()
        assert runtime.procurement.state().daily_spent == 0.0
        assert runtime.procurement.state().event_count == 0
