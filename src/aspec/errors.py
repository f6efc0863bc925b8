"""
aspec error types.

Expected failures (unparsable oracle output, exhausted budgets, failed
settlements, unpaid resources) are reported as structured results. These
exceptions cover the cases where a caller has to react: retry, abort, alert.
"""

from __future__ import annotations

from typing import Any, Optional


class AspecError(Exception):
    """Base error for all aspec operations."""
    pass


# Decision oracle errors
class OracleError(AspecError):
    """Base error for decision oracle failures."""

    kind = "oracle_error"


class OracleUnavailableError(OracleError):
    """Oracle could not be reached or returned a transport-level error."""

    kind = "oracle_unavailable"


class OracleMalformedError(OracleError):
    """Oracle answered, but the answer is not a decision."""

    kind = "oracle_malformed"


class OracleOutOfRangeError(OracleError):
    """Oracle answer is well-formed but carries out-of-range values."""

    kind = "oracle_out_of_range"


# Guardrail errors
class GuardrailError(AspecError):
    """Base error for guardrail violations."""
    pass


class BudgetExhaustedError(GuardrailError):
    """Committing the amount would breach the daily limit."""
    def __init__(self, amount: float, remaining: float):
        self.amount = amount
        self.remaining = remaining
        super().__init__(f"${amount} exceeds remaining daily budget ${remaining:.2f}")


# Settlement errors
class SettlementError(AspecError):
    """Base error for settlement failures."""
    pass


class InsufficientFundsError(SettlementError):
    """Wallet doesn't have enough USDC for the transfer."""
    pass


class SettlementConfigError(SettlementError):
    """Settlement strategy cannot be built from the given configuration."""
    pass


# Resource access errors
class ResourceError(AspecError):
    """Base error for pay-to-unlock resource failures."""
    def __init__(self, message: str, requirement: Any = None):
        self.requirement = requirement
        super().__init__(message)


class PaymentExpiredError(ResourceError):
    """Payment requirement expired before it could be paid."""
    pass


class PaymentLimitExceededError(ResourceError):
    """Amount due exceeds the caller's auto-pay ceiling."""
    pass


# Pipeline errors
class PipelineError(AspecError):
    """Unexpected fault inside an agent pipeline run.

    Always chained to the original exception.
    """
    def __init__(self, agent: str, stage: str, message: str, subject: Optional[str] = None):
        self.agent = agent
        self.stage = stage
        self.subject = subject
        super().__init__(f"{agent} pipeline failed during {stage}: {message}")
