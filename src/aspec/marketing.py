"""Marketing agent: pays influencers per post and tracks active collaborations."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any

from .decision import Decision
from .guardrail import Clamp
from .money import format_usd
from .pipeline import AgentPipeline, AgentResult
from .resource import DEFAULT_AUTO_PAY_LIMIT, ResourceResponse
from .settlement import TransactionResult
from .subjects import InfluencerData

PREMIUM_INFLUENCER_RESOURCE = "/api/influencer/premium"


class MarketingEventType(str, Enum):
    DISCOVERY = "discovery"
    EVALUATION = "evaluation"
    PAYMENT = "payment"
    CAMPAIGN = "campaign"
    ERROR = "error"


class MarketingAgent(AgentPipeline[InfluencerData]):
    kind = "marketing"
    amount_key = "suggestedBudget"
    activity = "evaluation"
    started_event = MarketingEventType.EVALUATION
    decision_event = MarketingEventType.EVALUATION
    error_event = MarketingEventType.ERROR
    discovery_event = MarketingEventType.DISCOVERY
    exhausted_error = "Daily marketing budget exhausted"
    exhausted_thought = "Cannot engage - daily marketing limit reached."

    def __init__(self, oracle, settlement, daily_limit: float = 500.0, max_per_post: float = 100.0, **kwargs):
        super().__init__(oracle, settlement, daily_limit, max_per_post, **kwargs)
        self._active_influencers: list[str] = []
        self._influencers_lock = threading.Lock()

    def evaluate_and_engage(self, influencer: InfluencerData) -> AgentResult:
        return self.run(influencer)

    def discover_influencers(
        self,
        auto_pay_limit: float = DEFAULT_AUTO_PAY_LIMIT,
        already_approved: bool = False,
    ) -> ResourceResponse:
        return self._discover(
            PREMIUM_INFLUENCER_RESOURCE,
            auto_pay_limit,
            already_approved,
            listing_key="influencers",
            label="influencer",
        )

    def active_influencers(self) -> list[str]:
        with self._influencers_lock:
            return list(self._active_influencers)

    def _subject_name(self, subject: InfluencerData) -> str:
        return subject.handle

    def _subject_attributes(self, subject: InfluencerData) -> dict[str, Any]:
        return {
            "handle": subject.handle,
            "platform": subject.platform,
            "followers": subject.followers,
            "engagement_rate": subject.engagement_rate,
            "niche": subject.niche,
            "requested_rate": subject.requested_rate,
        }

    def _destination(self, subject: InfluencerData) -> str:
        return subject.wallet_address

    def _emit_started(self, subject: InfluencerData) -> None:
        self._emit(
            MarketingEventType.EVALUATION,
            subject=subject.handle,
            platform=subject.platform,
            thought=(
                f"Evaluating @{subject.handle} ({subject.followers:,} followers, "
                f"{subject.engagement_rate:g}% engagement)..."
            ),
        )

    def _emit_decision(self, subject: InfluencerData, decision: Decision) -> None:
        self._emit(
            MarketingEventType.EVALUATION,
            subject=subject.handle,
            decision=decision,
            thought=decision.reasoning,
        )

    def _on_settled(self, subject: InfluencerData, clamp: Clamp, transaction: TransactionResult) -> None:
        with self._influencers_lock:
            self._active_influencers.append(subject.handle)
        self._emit(
            MarketingEventType.PAYMENT,
            subject=subject.handle,
            transaction=transaction,
            thought=(
                f"Payment of {format_usd(clamp.amount)} USDC sent to @{subject.handle} "
                "for campaign collaboration"
            ),
        )
        self._emit(
            MarketingEventType.CAMPAIGN,
            subject=subject.handle,
            thought=f"Campaign activated with @{subject.handle} - awaiting post confirmation",
        )

    def _on_settlement_failed(self, subject: InfluencerData, clamp: Clamp, transaction: TransactionResult) -> None:
        self._emit(
            MarketingEventType.ERROR,
            subject=subject.handle,
            transaction=transaction,
            error=transaction.error_reason,
            thought=f"Payment failed: {transaction.error_reason}",
        )
