"""
Runtime configuration.

Every knob has a default suitable for an offline demo (mock settlement,
rule-based oracle). Environment variables override the defaults; nothing is
switched on implicitly by the mere presence of a credential.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

# Guardrails
ASPEC_PROCUREMENT_DAILY_LIMIT_ENV = "ASPEC_PROCUREMENT_DAILY_LIMIT"
ASPEC_PROCUREMENT_MAX_PER_TX_ENV = "ASPEC_PROCUREMENT_MAX_PER_TX"
ASPEC_MARKETING_DAILY_LIMIT_ENV = "ASPEC_MARKETING_DAILY_LIMIT"
ASPEC_MARKETING_MAX_PER_POST_ENV = "ASPEC_MARKETING_MAX_PER_POST"

# Settlement
ASPEC_SETTLEMENT_MODE_ENV = "ASPEC_SETTLEMENT_MODE"
ASPEC_RPC_URL_ENV = "ASPEC_RPC_URL"
ASPEC_EXPLORER_URL_ENV = "ASPEC_EXPLORER_URL"
ASPEC_CHAIN_ID_ENV = "ASPEC_CHAIN_ID"
ASPEC_USDC_ADDRESS_ENV = "ASPEC_USDC_ADDRESS"
ASPEC_WALLET_PRIVATE_KEY_ENV = "ASPEC_WALLET_PRIVATE_KEY"
ASPEC_MOCK_BALANCE_ENV = "ASPEC_MOCK_BALANCE"
ASPEC_MOCK_DELAY_ENV = "ASPEC_MOCK_DELAY"

# Decision oracle
ASPEC_ORACLE_MODE_ENV = "ASPEC_ORACLE_MODE"
ASPEC_LLM_API_KEY_ENV = "ASPEC_LLM_API_KEY"
ASPEC_LLM_MODEL_ENV = "ASPEC_LLM_MODEL"
ASPEC_LLM_BASE_URL_ENV = "ASPEC_LLM_BASE_URL"
ASPEC_LLM_TIMEOUT_ENV = "ASPEC_LLM_TIMEOUT"

SETTLEMENT_MODES = ("mock", "rpc")
ORACLE_MODES = ("rules", "llm")

DEFAULT_RPC_URL = "https://testnet-rpc.arc.network"
DEFAULT_EXPLORER_URL = "https://testnet-explorer.arc.network"
DEFAULT_CHAIN_ID = 1921
DEFAULT_USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
DEFAULT_LLM_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_LLM_MODEL = "google/gemini-2.0-flash-exp"


@dataclass
class GuardrailConfig:
    daily_limit_usd: float
    max_per_tx_usd: float


@dataclass
class SettlementConfig:
    mode: str = "mock"
    rpc_url: str = DEFAULT_RPC_URL
    explorer_url: str = DEFAULT_EXPLORER_URL
    chain_id: int = DEFAULT_CHAIN_ID
    usdc_address: str = DEFAULT_USDC_ADDRESS
    usdc_decimals: int = 6
    private_key: Optional[str] = field(default=None, repr=False)
    mock_balance_usd: float = 10_000.0
    mock_delay_seconds: float = 1.5
    receipt_timeout_seconds: float = 60.0
    gas_limit: int = 100_000


@dataclass
class OracleConfig:
    mode: str = "rules"
    api_key: str = field(default="", repr=False)
    model: str = DEFAULT_LLM_MODEL
    base_url: str = DEFAULT_LLM_BASE_URL
    timeout_seconds: float = 20.0
    temperature: float = 0.7
    max_tokens: int = 2048


@dataclass
class AspecConfig:
    procurement: GuardrailConfig = field(
        default_factory=lambda: GuardrailConfig(daily_limit_usd=2000.0, max_per_tx_usd=500.0)
    )
    marketing: GuardrailConfig = field(
        default_factory=lambda: GuardrailConfig(daily_limit_usd=500.0, max_per_tx_usd=100.0)
    )
    settlement: SettlementConfig = field(default_factory=SettlementConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _get_choice(env: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (env.get(name) or default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> AspecConfig:
    """Build configuration from environment variables (defaults otherwise)."""
    env = os.environ if env is None else env
    defaults = AspecConfig()

    procurement = GuardrailConfig(
        daily_limit_usd=_get_float(env, ASPEC_PROCUREMENT_DAILY_LIMIT_ENV, defaults.procurement.daily_limit_usd),
        max_per_tx_usd=_get_float(env, ASPEC_PROCUREMENT_MAX_PER_TX_ENV, defaults.procurement.max_per_tx_usd),
    )
    marketing = GuardrailConfig(
        daily_limit_usd=_get_float(env, ASPEC_MARKETING_DAILY_LIMIT_ENV, defaults.marketing.daily_limit_usd),
        max_per_tx_usd=_get_float(env, ASPEC_MARKETING_MAX_PER_POST_ENV, defaults.marketing.max_per_tx_usd),
    )

    settlement = SettlementConfig(
        mode=_get_choice(env, ASPEC_SETTLEMENT_MODE_ENV, "mock", SETTLEMENT_MODES),
        rpc_url=env.get(ASPEC_RPC_URL_ENV) or DEFAULT_RPC_URL,
        explorer_url=env.get(ASPEC_EXPLORER_URL_ENV) or DEFAULT_EXPLORER_URL,
        chain_id=int(env.get(ASPEC_CHAIN_ID_ENV) or DEFAULT_CHAIN_ID),
        usdc_address=env.get(ASPEC_USDC_ADDRESS_ENV) or DEFAULT_USDC_ADDRESS,
        private_key=env.get(ASPEC_WALLET_PRIVATE_KEY_ENV) or None,
        mock_balance_usd=_get_float(env, ASPEC_MOCK_BALANCE_ENV, 10_000.0),
        mock_delay_seconds=_get_float(env, ASPEC_MOCK_DELAY_ENV, 1.5),
    )

    oracle = OracleConfig(
        mode=_get_choice(env, ASPEC_ORACLE_MODE_ENV, "rules", ORACLE_MODES),
        api_key=env.get(ASPEC_LLM_API_KEY_ENV, ""),
        model=env.get(ASPEC_LLM_MODEL_ENV) or DEFAULT_LLM_MODEL,
        base_url=env.get(ASPEC_LLM_BASE_URL_ENV) or DEFAULT_LLM_BASE_URL,
        timeout_seconds=_get_float(env, ASPEC_LLM_TIMEOUT_ENV, 20.0),
    )

    return AspecConfig(
        procurement=procurement,
        marketing=marketing,
        settlement=settlement,
        oracle=oracle,
    )
