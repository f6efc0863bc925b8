"""
Decision oracles.

LLMDecisionOracle asks an OpenAI-compatible chat-completions endpoint and
validates the answer with `parse_decision`. Any oracle failure degrades to a
HOLD decision that names the failure kind; it never raises into the pipeline.

RuleBasedOracle is a deterministic stand-in for offline runs.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .config import OracleConfig
from .decision import Action, Decision, DecisionContext, DecisionOracle, parse_decision
from .errors import OracleError, OracleMalformedError, OracleUnavailableError
from .prompts import render_system_prompt, render_user_prompt

logger = logging.getLogger(__name__)


class LLMDecisionOracle:
    """Chat-completions backed oracle with strict output validation."""

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or OracleConfig(mode="llm")
        self._http = http or httpx.Client(timeout=self.config.timeout_seconds)

    def decide(self, context: DecisionContext) -> Decision:
        try:
            raw = self._complete(context)
            decision = parse_decision(raw)
        except OracleError as e:
            logger.warning("Decision oracle degraded to HOLD (%s): %s", e.kind, e)
            return Decision.hold(f"Unable to parse agent response: {e}", fallback=e.kind)

        logger.info(
            "Oracle decided %s for %s (confidence %s)",
            decision.action.value,
            context.kind,
            decision.confidence,
        )
        return decision

    def _complete(self, context: DecisionContext) -> str:
        if not self.config.api_key:
            raise OracleUnavailableError(f"{self.config.model}: no API key configured")

        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": render_system_prompt(context)},
                {"role": "user", "content": render_user_prompt(context)},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        try:
            response = self._http.post(self.config.base_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OracleUnavailableError(
                f"Oracle returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise OracleUnavailableError(f"Oracle request failed: {type(e).__name__}: {e}") from e

        try:
            body: Any = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleMalformedError("Oracle reply has no message content") from e
        if not isinstance(content, str):
            raise OracleMalformedError("Oracle message content is not text")
        return content

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class RuleBasedOracle:
    """Deterministic oracle: buy at or below target, engage good-value creators."""

    min_engagement_rate = 2.0

    def decide(self, context: DecisionContext) -> Decision:
        if context.kind == "procurement":
            return self._procurement(context)
        if context.kind == "marketing":
            return self._marketing(context)
        return Decision.hold(f"No rules for agent kind {context.kind}")

    def _procurement(self, context: DecisionContext) -> Decision:
        s = context.subject
        current = float(s["current_price"])
        target = float(s["target_price"])
        if current <= target:
            discount = (target - current) / target * 100 if target else 0.0
            # The ledger clamps this down to what is left today.
            amount = context.guardrails.max_per_transaction
            return Decision(
                action=Action.EXECUTE,
                reasoning=(
                    f"Current price ${current:g} is {discount:.0f}% below target ${target:g}."
                ),
                confidence=min(95, 60 + round(discount)),
                parameters={"amount": amount, "urgency": "high" if discount >= 15 else "medium"},
            )
        return Decision(
            action=Action.HOLD,
            reasoning=f"Current price ${current:g} is above target ${target:g}; waiting.",
            confidence=70,
        )

    def _marketing(self, context: DecisionContext) -> Decision:
        s = context.subject
        rate = float(s["requested_rate"])
        engagement = float(s["engagement_rate"])
        if engagement < self.min_engagement_rate:
            return Decision(
                action=Action.REJECT,
                reasoning=f"Engagement {engagement:g}% is below the {self.min_engagement_rate:g}% floor.",
                confidence=85,
            )
        if rate > context.guardrails.max_per_transaction:
            return Decision(
                action=Action.HOLD,
                reasoning=(
                    f"Requested ${rate:g}/post exceeds the "
                    f"${context.guardrails.max_per_transaction:g} per-post cap."
                ),
                confidence=65,
            )
        return Decision(
            action=Action.EXECUTE,
            reasoning=f"{engagement:g}% engagement at ${rate:g}/post is good value.",
            confidence=min(95, 50 + round(engagement * 7)),
            parameters={"suggestedBudget": rate, "postCount": 1},
        )


def build_oracle(config: OracleConfig) -> DecisionOracle:
    if config.mode == "llm":
        return LLMDecisionOracle(config)
    if config.mode == "rules":
        return RuleBasedOracle()
    raise ValueError(f"Unknown oracle mode: {config.mode}")
