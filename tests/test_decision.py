"""Tests for decisions and oracle output parsing."""

import json

import pytest

from aspec.decision import Action, Decision, DecisionContext, parse_decision
from aspec.errors import OracleMalformedError, OracleOutOfRangeError
from aspec.guardrail import GuardrailSnapshot
from aspec.prompts import render_system_prompt, render_user_prompt


def _raw(**overrides):
    body = {
        "action": "EXECUTE",
        "reasoning": "Price is 19% below target",
        "confidence": 85,
        "parameters": {"amount": 500, "urgency": "high"},
    }
    body.update(overrides)
    return json.dumps(body)


class TestParseDecision:
    def test_valid_response(self):
        decision = parse_decision(_raw())
        assert decision.action is Action.EXECUTE
        assert decision.confidence == 85
        assert decision.parameters["urgency"] == "high"
        assert decision.fallback is None

    def test_code_fence_and_case(self):
        decision = parse_decision("```json\n" + _raw(action="hold") + "\n```")
        assert decision.action is Action.HOLD

    def test_mapping_input(self):
        decision = parse_decision({"action": "REJECT", "reasoning": "Low fit", "confidence": 40})
        assert decision.action is Action.REJECT
        assert dict(decision.parameters) == {}

    def test_null_parameters(self):
        assert dict(parse_decision(_raw(parameters=None)).parameters) == {}

    @pytest.mark.parametrize("raw", ["", "   ", "not json", "{\"action\": "])
    def test_unparsable_text_is_malformed(self, raw):
        with pytest.raises(OracleMalformedError):
            parse_decision(raw)

    def test_non_object_is_malformed(self):
        with pytest.raises(OracleMalformedError, match="JSON object"):
            parse_decision("[1, 2, 3]")

    def test_unknown_action_is_malformed(self):
        with pytest.raises(OracleMalformedError, match="action"):
            parse_decision(_raw(action="BUY"))

    def test_missing_fields_are_malformed(self):
        with pytest.raises(OracleMalformedError, match="reasoning"):
            parse_decision(json.dumps({"action": "HOLD", "confidence": 10}))

    @pytest.mark.parametrize("confidence", [-1, 101, 250.5])
    def test_confidence_out_of_range(self, confidence):
        with pytest.raises(OracleOutOfRangeError):
            parse_decision(_raw(confidence=confidence))

    def test_negative_amount_out_of_range(self):
        with pytest.raises(OracleOutOfRangeError, match="amount"):
            parse_decision(_raw(parameters={"amount": -10}))
        with pytest.raises(OracleOutOfRangeError, match="suggestedBudget"):
            parse_decision(_raw(parameters={"suggestedBudget": -1}))

    def test_error_kinds(self):
        assert OracleMalformedError.kind == "oracle_malformed"
        assert OracleOutOfRangeError.kind == "oracle_out_of_range"


class TestDecision:
    def test_proposed_amount(self):
        d = Decision(Action.EXECUTE, "ok", 80, {"amount": 200, "flag": True, "text": "50", "zero": 0})
        assert d.proposed_amount("amount") == 200.0
        assert d.proposed_amount("flag") is None
        assert d.proposed_amount("text") is None
        assert d.proposed_amount("zero") is None
        assert d.proposed_amount("missing") is None

    def test_non_finite_amount_is_not_a_proposal(self):
        d = Decision(Action.EXECUTE, "ok", 80, {"amount": float("inf")})
        assert d.proposed_amount("amount") is None

    def test_parameters_are_read_only(self):
        d = Decision(Action.EXECUTE, "ok", 80, {"amount": 200})
        with pytest.raises(TypeError):
            d.parameters["amount"] = 1000

    def test_hold_fallback(self):
        d = Decision.hold("Unable to parse agent response", fallback="oracle_malformed")
        assert d.action is Action.HOLD
        assert d.confidence == 0
        assert d.to_dict()["fallback"] == "oracle_malformed"

    def test_action_coerced_from_string(self):
        assert Decision("REJECT", "no", 50).action is Action.REJECT


class TestPrompts:
    def _context(self, kind):
        snap = GuardrailSnapshot(daily_spent=150.0, daily_limit=2000.0, max_per_transaction=500.0)
        return DecisionContext(kind=kind, subject={"supplier": "PackagePro"}, guardrails=snap)

    def test_system_prompt_carries_limits(self):
        prompt = render_system_prompt(self._context("procurement"))
        assert "$500 USDC" in prompt
        assert "$2000 USDC" in prompt
        assert "already spent today: $150" in prompt
        assert "${" not in prompt

    def test_marketing_prompt(self):
        assert "suggestedBudget" in render_system_prompt(self._context("marketing"))

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            render_system_prompt(self._context("treasury"))

    def test_user_prompt_includes_subject(self):
        prompt = render_user_prompt(self._context("procurement"))
        assert "PackagePro" in prompt
        assert '"remaining": 1850.0' in prompt
