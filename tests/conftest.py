"""Shared fakes for pipeline and resource tests."""

from __future__ import annotations

import pytest

from aspec.decision import Action, Decision, DecisionContext
from aspec.settlement import MockSettlement, sequential_references
from aspec.subjects import InfluencerData, SupplierPriceData


class ScriptedOracle:
    """Returns queued decisions (or raises queued exceptions) in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.contexts: list[DecisionContext] = []

    def decide(self, context: DecisionContext) -> Decision:
        self.contexts.append(context)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def execute(**parameters) -> Decision:
    return Decision(action=Action.EXECUTE, reasoning="Good deal", confidence=85, parameters=parameters)


@pytest.fixture
def settlement():
    return MockSettlement(balance=10_000.0, reference_factory=sequential_references())


@pytest.fixture
def supplier():
    return SupplierPriceData(
        supplier="GlobalTextiles Co",
        product="Cotton T-Shirts (100 units)",
        current_price=14.50,
        target_price=18.00,
        historical_prices=(16.00, 15.50, 15.00),
        supplier_wallet="0xSUPPLIER_TEXTILES_WALLET",
    )


@pytest.fixture
def influencer():
    return InfluencerData(
        handle="creativevibes",
        platform="Instagram",
        followers=45000,
        engagement_rate=4.2,
        niche="Lifestyle/Fashion",
        requested_rate=50,
        wallet_address="0xINFLUENCER_CREATIVE_WALLET",
    )
