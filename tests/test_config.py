"""Tests for environment-driven configuration."""

import pytest

from aspec.config import (
    DEFAULT_CHAIN_ID,
    DEFAULT_RPC_URL,
    load_config,
)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config({})
        assert config.procurement.daily_limit_usd == 2000.0
        assert config.procurement.max_per_tx_usd == 500.0
        assert config.marketing.daily_limit_usd == 500.0
        assert config.marketing.max_per_tx_usd == 100.0
        assert config.settlement.mode == "mock"
        assert config.settlement.rpc_url == DEFAULT_RPC_URL
        assert config.settlement.chain_id == DEFAULT_CHAIN_ID
        assert config.settlement.private_key is None
        assert config.oracle.mode == "rules"
        assert config.oracle.api_key == ""

    def test_overrides(self):
        config = load_config({
            "ASPEC_PROCUREMENT_DAILY_LIMIT": "750",
            "ASPEC_MARKETING_MAX_PER_POST": "25.5",
            "ASPEC_SETTLEMENT_MODE": "RPC",
            "ASPEC_WALLET_PRIVATE_KEY": "0xabc",
            "ASPEC_CHAIN_ID": "5042002",
            "ASPEC_ORACLE_MODE": "llm",
            "ASPEC_LLM_API_KEY": "sk-test",
            "ASPEC_MOCK_DELAY": "0",
        })
        assert config.procurement.daily_limit_usd == 750.0
        assert config.marketing.max_per_tx_usd == 25.5
        assert config.settlement.mode == "rpc"
        assert config.settlement.private_key == "0xabc"
        assert config.settlement.chain_id == 5042002
        assert config.settlement.mock_delay_seconds == 0.0
        assert config.oracle.mode == "llm"
        assert config.oracle.api_key == "sk-test"

    def test_private_key_does_not_change_mode(self):
        config = load_config({"ASPEC_WALLET_PRIVATE_KEY": "0xabc"})
        assert config.settlement.mode == "mock"

    def test_blank_number_uses_default(self):
        assert load_config({"ASPEC_MOCK_BALANCE": "  "}).settlement.mock_balance_usd == 10_000.0

    def test_bad_number(self):
        with pytest.raises(ValueError, match="ASPEC_MARKETING_DAILY_LIMIT"):
            load_config({"ASPEC_MARKETING_DAILY_LIMIT": "lots"})

    def test_bad_choice(self):
        with pytest.raises(ValueError, match="ASPEC_SETTLEMENT_MODE"):
            load_config({"ASPEC_SETTLEMENT_MODE": "paper"})

    def test_secrets_hidden_from_repr(self):
        config = load_config({"ASPEC_WALLET_PRIVATE_KEY": "0xsecret", "ASPEC_LLM_API_KEY": "sk-secret"})
        assert "0xsecret" not in repr(config)
        assert "sk-secret" not in repr(config)
