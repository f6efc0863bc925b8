"""Tests for settlement strategies."""

import json

import httpx
import pytest
from eth_account import Account

from aspec.config import SettlementConfig
from aspec.errors import SettlementConfigError
from aspec.settlement import (
    MockSettlement,
    RpcSettlement,
    build_settlement,
    explorer_link,
    sequential_references,
)

SUPPLIER = "0x" + "ab" * 20


class TestMockSettlement:
    def test_successful_transfer(self):
        wallet = MockSettlement(balance=1000, reference_factory=sequential_references(),
                                explorer_url="https://explorer.test/")
        result = wallet.transfer("0xSUPPLIER_WALLET", 200)
        assert result.success
        assert result.reference == "0x" + "0" * 63 + "1"
        assert result.explorer_link == f"https://explorer.test/tx/{result.reference}"
        assert result.amount == 200.0
        assert wallet.balance == 800.0

    def test_insufficient_balance(self):
        wallet = MockSettlement(balance=100)
        result = wallet.transfer("0xSUPPLIER_WALLET", 150)
        assert not result.success
        assert result.error_reason == "Insufficient USDC balance"
        assert wallet.balance == 100.0

    def test_invalid_inputs(self):
        wallet = MockSettlement()
        assert wallet.transfer("0xW", 0).error_reason == "Amount must be positive"
        assert wallet.transfer("", 5).error_reason == "Destination is required"

    def test_delay_uses_injected_sleep(self):
        slept = []
        wallet = MockSettlement(delay_seconds=1.5, sleep=slept.append)
        wallet.transfer("0xW", 1)
        assert slept == [1.5]

    def test_attempts_recorded(self):
        wallet = MockSettlement(balance=10)
        wallet.transfer("0xA", 5)
        wallet.transfer("0xB", 50)
        assert [a.destination for a in wallet.attempts] == ["0xA", "0xB"]
        assert [a.result.success for a in wallet.attempts] == [True, False]

    def test_add_funds(self):
        wallet = MockSettlement(balance=0)
        wallet.add_funds(25.5)
        assert wallet.balance == 25.5


class FakeChain:
    """Minimal JSON-RPC node for transfer tests."""

    def __init__(self, receipt_status="0x1", error=None, pending_polls=0):
        self.receipt_status = receipt_status
        self.error = error
        self.pending_polls = pending_polls
        self.calls = []

    def __call__(self, request):
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append((method, body["params"]))
        if self.error and method == "eth_sendRawTransaction":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"message": self.error}})
        result = {
            "eth_getTransactionCount": "0x7",
            "eth_gasPrice": "0x3b9aca00",
            "eth_sendRawTransaction": "0x" + "cd" * 32,
            "eth_call": hex(2_500_000),
        }.get(method)
        if method == "eth_getTransactionReceipt":
            if self.pending_polls:
                self.pending_polls -= 1
                result = None
            else:
                result = {"status": self.receipt_status, "transactionHash": "0x" + "cd" * 32, "gasUsed": "0x5208"}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def _rpc(chain):
    http = httpx.Client(transport=httpx.MockTransport(chain))
    config = SettlementConfig(mode="rpc", rpc_url="https://rpc.test", explorer_url="https://explorer.test")
    return RpcSettlement(Account.create(), config=config, http=http, poll_interval=0, sleep=lambda s: None)


class TestRpcSettlement:
    def test_transfer_submits_erc20_call(self):
        chain = FakeChain(pending_polls=2)
        result = _rpc(chain).transfer(SUPPLIER, 200)
        assert result.success
        assert result.reference == "0x" + "cd" * 32
        assert result.gas_used == "21000"
        assert result.explorer_link.startswith("https://explorer.test/tx/0x")
        methods = [m for m, _ in chain.calls]
        assert methods[:3] == ["eth_getTransactionCount", "eth_gasPrice", "eth_sendRawTransaction"]
        assert methods.count("eth_getTransactionReceipt") == 3

    def test_reverted_transaction(self):
        result = _rpc(FakeChain(receipt_status="0x0")).transfer(SUPPLIER, 10)
        assert not result.success
        assert "reverted" in result.error_reason

    def test_insufficient_funds(self):
        result = _rpc(FakeChain(error="insufficient funds for transfer")).transfer(SUPPLIER, 10)
        assert not result.success
        assert result.error_reason.startswith("Insufficient USDC balance")

    def test_other_rpc_error(self):
        result = _rpc(FakeChain(error="nonce too low")).transfer(SUPPLIER, 10)
        assert not result.success
        assert "nonce too low" in result.error_reason

    def test_invalid_destination_never_hits_the_node(self):
        chain = FakeChain()
        result = _rpc(chain).transfer("0xSUPPLIER_TEXTILES_WALLET", 10)
        assert not result.success
        assert chain.calls == []

    def test_balance(self):
        assert _rpc(FakeChain()).balance() == 2.5


class TestBuildSettlement:
    def test_mock_is_default(self):
        wallet = build_settlement(SettlementConfig(mock_balance_usd=42, mock_delay_seconds=0))
        assert isinstance(wallet, MockSettlement)
        assert wallet.balance == 42.0

    def test_rpc_requires_key(self):
        with pytest.raises(SettlementConfigError):
            build_settlement(SettlementConfig(mode="rpc"))

    def test_rpc_with_key(self):
        key = Account.create().key.hex()
        wallet = build_settlement(SettlementConfig(mode="rpc", private_key=key))
        assert isinstance(wallet, RpcSettlement)
        wallet.close()

    def test_key_alone_does_not_switch_mode(self):
        key = Account.create().key.hex()
        assert isinstance(build_settlement(SettlementConfig(private_key=key)), MockSettlement)

    def test_unknown_mode(self):
        with pytest.raises(SettlementConfigError):
            build_settlement(SettlementConfig(mode="carrier-pigeon"))


def test_explorer_link_strips_slash():
    assert explorer_link("https://x.test/", "0xab") == "https://x.test/tx/0xab"
