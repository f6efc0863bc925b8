"""
Decisions produced by a decision oracle, and strict parsing of oracle output.

Raw oracle output is validated against `DecisionSchema`. Three failure kinds
are kept apart so callers can tell them apart in logs and events:

- OracleUnavailableError: nothing came back (raised by the oracle transport)
- OracleMalformedError: something came back, but it is not a decision
- OracleOutOfRangeError: a decision came back with impossible values
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import OracleMalformedError, OracleOutOfRangeError
from .guardrail import GuardrailSnapshot


class Action(str, Enum):
    EXECUTE = "EXECUTE"
    HOLD = "HOLD"
    REJECT = "REJECT"


# Parameter keys that carry a proposed spend.
AMOUNT_KEYS = ("amount", "suggestedBudget")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class Decision:
    """An oracle recommendation. Immutable once produced."""

    action: Action
    reasoning: str
    confidence: float
    parameters: Mapping[str, Any] = field(default_factory=dict)
    fallback: Optional[str] = None  # oracle error kind when degraded to HOLD

    def __post_init__(self):
        object.__setattr__(self, "action", Action(self.action))
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters or {})))

    @classmethod
    def hold(cls, reasoning: str, fallback: Optional[str] = None) -> "Decision":
        return cls(action=Action.HOLD, reasoning=reasoning, confidence=0, fallback=fallback)

    @property
    def is_execute(self) -> bool:
        return self.action is Action.EXECUTE

    def proposed_amount(self, key: str) -> Optional[float]:
        """Numeric spend proposal under `key`, or None when there is none.

        Booleans, strings, zero and non-finite numbers are not proposals.
        """
        value = self.parameters.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value) or value == 0:
            return None
        return float(value)

    def to_dict(self) -> dict:
        d = {
            "action": self.action.value,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "parameters": dict(self.parameters),
        }
        if self.fallback:
            d["fallback"] = self.fallback
        return d


@dataclass(frozen=True)
class DecisionContext:
    """What the oracle gets to see: the subject plus the current budget."""

    kind: str
    subject: Mapping[str, Any]
    guardrails: GuardrailSnapshot

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "subject": dict(self.subject),
            "guardrails": self.guardrails.to_dict(),
        }


class DecisionOracle(Protocol):
    """Anything that turns a context into a Decision."""

    def decide(self, context: DecisionContext) -> Decision:
        ...


class DecisionSchema(BaseModel):
    """Wire shape an oracle must answer with."""

    model_config = ConfigDict(extra="ignore")

    action: Literal["EXECUTE", "HOLD", "REJECT"]
    reasoning: str
    confidence: float
    parameters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("parameters", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


def _load_json(raw: str) -> Any:
    text = raw.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    if not text:
        raise OracleMalformedError("Oracle returned an empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise OracleMalformedError(f"Oracle response is not JSON: {e.msg}") from e


def parse_decision(raw: str | Mapping[str, Any]) -> Decision:
    """Validate raw oracle output into a Decision.

    Raises OracleMalformedError or OracleOutOfRangeError.
    """
    data = _load_json(raw) if isinstance(raw, str) else raw
    if not isinstance(data, Mapping):
        raise OracleMalformedError(
            f"Oracle response must be a JSON object, got {type(data).__name__}"
        )

    try:
        parsed = DecisionSchema.model_validate(dict(data))
    except ValidationError as e:
        fields_ = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise OracleMalformedError(f"Oracle response failed validation: {fields_}") from e

    if not math.isfinite(parsed.confidence) or not 0 <= parsed.confidence <= 100:
        raise OracleOutOfRangeError(
            f"Confidence {parsed.confidence} outside [0, 100]"
        )
    for key in AMOUNT_KEYS:
        value = parsed.parameters.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if not math.isfinite(value) or value < 0:
            raise OracleOutOfRangeError(f"Parameter {key}={value} must be a non-negative amount")

    return Decision(
        action=Action(parsed.action),
        reasoning=parsed.reasoning,
        confidence=parsed.confidence,
        parameters=parsed.parameters,
    )
