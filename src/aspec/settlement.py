"""
Settlement strategies: the component that actually moves USDC.

The pipeline only sees the `SettlementOracle` protocol. Which strategy backs
it is chosen once, at construction time, by `build_settlement()`:

- MockSettlement: in-memory balance, artificial delay, insufficient-funds failures
- RpcSettlement: ERC-20 transfer signed with eth-account, sent over JSON-RPC
"""

from __future__ import annotations

import itertools
import logging
import re
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import httpx
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from .config import DEFAULT_EXPLORER_URL, SettlementConfig
from .errors import InsufficientFundsError, SettlementConfigError, SettlementError
from .money import (
    amount_usd_to_micros,
    format_usd_from_micros,
    micros_to_base_units,
    micros_to_usd_float,
)

logger = logging.getLogger(__name__)

ERC20_TRANSFER_SELECTOR = "a9059cbb"
ERC20_BALANCE_OF_SELECTOR = "70a08231"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of one settlement attempt."""

    success: bool
    reference: Optional[str] = None
    explorer_link: Optional[str] = None
    error_reason: Optional[str] = None
    amount: Optional[float] = None
    gas_used: Optional[str] = None

    @classmethod
    def ok(
        cls,
        reference: str,
        explorer_link: str,
        amount: float,
        gas_used: Optional[str] = None,
    ) -> "TransactionResult":
        return cls(
            success=True,
            reference=reference,
            explorer_link=explorer_link,
            amount=amount,
            gas_used=gas_used,
        )

    @classmethod
    def failed(cls, reason: str, amount: Optional[float] = None) -> "TransactionResult":
        return cls(success=False, error_reason=reason, amount=amount)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reference": self.reference,
            "explorer_link": self.explorer_link,
            "error_reason": self.error_reason,
            "amount": self.amount,
            "gas_used": self.gas_used,
        }


class SettlementOracle(Protocol):
    def transfer(self, destination: str, amount: float) -> TransactionResult:
        ...


def explorer_link(explorer_url: str, reference: str) -> str:
    return f"{explorer_url.rstrip('/')}/tx/{reference}"


def random_reference() -> str:
    return f"0x{int(time.time() * 1000):x}{secrets.token_hex(4)}"


def sequential_references(start: int = 1) -> Callable[[], str]:
    """Deterministic reference factory: 0x000...01, 0x000...02, ..."""
    counter = itertools.count(start)
    return lambda: f"0x{next(counter):064x}"


@dataclass
class TransferAttempt:
    destination: str
    amount: float
    result: Optional[TransactionResult] = None
    timestamp: float = field(default_factory=time.time)


class MockSettlement:
    """In-memory USDC wallet for demos and tests."""

    def __init__(
        self,
        balance: float = 10_000.0,
        delay_seconds: float = 0.0,
        explorer_url: str = DEFAULT_EXPLORER_URL,
        reference_factory: Optional[Callable[[], str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._balance_micros = amount_usd_to_micros(balance)
        self.delay_seconds = delay_seconds
        self.explorer_url = explorer_url
        self._reference_factory = reference_factory or random_reference
        self._sleep = sleep
        self._lock = threading.Lock()
        self.attempts: list[TransferAttempt] = []
        self.address = "0xMOCK_WALLET_ADDRESS_FOR_DEMO"

    @property
    def balance(self) -> float:
        return micros_to_usd_float(self._balance_micros)

    def add_funds(self, amount: float) -> None:
        with self._lock:
            self._balance_micros += amount_usd_to_micros(amount)

    def transfer(self, destination: str, amount: float) -> TransactionResult:
        attempt = TransferAttempt(destination=destination, amount=amount)
        self.attempts.append(attempt)

        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

        attempt.result = self._settle(destination, amount)
        return attempt.result

    def _settle(self, destination: str, amount: float) -> TransactionResult:
        amount_micros = amount_usd_to_micros(amount)
        if amount_micros <= 0:
            return TransactionResult.failed("Amount must be positive", amount=amount)
        if not destination:
            return TransactionResult.failed("Destination is required", amount=amount)

        with self._lock:
            if amount_micros > self._balance_micros:
                logger.warning(
                    "Mock transfer of %s to %s refused: balance %s",
                    format_usd_from_micros(amount_micros),
                    destination,
                    format_usd_from_micros(self._balance_micros),
                )
                return TransactionResult.failed("Insufficient USDC balance", amount=amount)
            self._balance_micros -= amount_micros

        reference = self._reference_factory()
        logger.info("Mock transfer %s → %s (%s)", format_usd_from_micros(amount_micros), destination, reference)
        return TransactionResult.ok(
            reference=reference,
            explorer_link=explorer_link(self.explorer_url, reference),
            amount=micros_to_usd_float(amount_micros),
            gas_used="21000",
        )


class RpcSettlement:
    """ERC-20 USDC transfers on an EVM chain via raw JSON-RPC."""

    def __init__(
        self,
        account: LocalAccount,
        config: Optional[SettlementConfig] = None,
        http: Optional[httpx.Client] = None,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or SettlementConfig(mode="rpc")
        self._account = account
        self._http = http or httpx.Client(timeout=30.0)
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._request_ids = itertools.count(1)
        self._lock = threading.Lock()
        self._token = to_checksum_address(self.config.usdc_address)

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        config: Optional[SettlementConfig] = None,
        http: Optional[httpx.Client] = None,
    ) -> "RpcSettlement":
        account = Account.from_key(private_key)
        return cls(account=account, config=config, http=http)

    @property
    def address(self) -> str:
        return self._account.address

    def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        response = self._http.post(self.config.rpc_url, json=payload)
        response.raise_for_status()
        body = response.json()
        if body.get("error"):
            err = body["error"]
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            if "insufficient" in message.lower():
                raise InsufficientFundsError(message)
            raise SettlementError(f"{method} failed: {message}")
        return body.get("result")

    def balance(self) -> float:
        data = "0x" + ERC20_BALANCE_OF_SELECTOR + _pad_address(self.address)
        result = self._rpc("eth_call", [{"to": self._token, "data": data}, "latest"])
        base_units = int(result, 16)
        return base_units / 10 ** self.config.usdc_decimals

    def transfer(self, destination: str, amount: float) -> TransactionResult:
        if not _ADDRESS_RE.match(destination or ""):
            return TransactionResult.failed(f"Invalid destination address: {destination}", amount=amount)
        amount_micros = amount_usd_to_micros(amount)
        if amount_micros <= 0:
            return TransactionResult.failed("Amount must be positive", amount=amount)

        try:
            # One in-flight transfer per wallet keeps nonces ordered.
            with self._lock:
                tx_hash = self._send_transfer(destination, amount_micros)
            receipt = self._wait_for_receipt(tx_hash)
        except InsufficientFundsError as e:
            logger.warning("USDC transfer refused: %s", e)
            return TransactionResult.failed(f"Insufficient USDC balance: {e}", amount=amount)
        except (SettlementError, httpx.HTTPError) as e:
            logger.warning("USDC transfer failed: %s", e)
            return TransactionResult.failed(str(e) or type(e).__name__, amount=amount)
        except Exception as e:
            logger.exception("USDC transfer failed (unexpected)")
            return TransactionResult.failed(f"{type(e).__name__}: {e}", amount=amount)

        if receipt.get("status") != "0x1":
            return TransactionResult.failed(f"Transaction {tx_hash} reverted", amount=amount)

        reference = receipt.get("transactionHash") or tx_hash
        gas_used = receipt.get("gasUsed")
        return TransactionResult.ok(
            reference=reference,
            explorer_link=explorer_link(self.config.explorer_url, reference),
            amount=micros_to_usd_float(amount_micros),
            gas_used=str(int(gas_used, 16)) if gas_used else None,
        )

    def _send_transfer(self, destination: str, amount_micros: int) -> str:
        base_units = micros_to_base_units(amount_micros, self.config.usdc_decimals)
        data = (
            "0x"
            + ERC20_TRANSFER_SELECTOR
            + _pad_address(destination)
            + format(base_units, "x").rjust(64, "0")
        )
        nonce = int(self._rpc("eth_getTransactionCount", [self.address, "pending"]), 16)
        gas_price = int(self._rpc("eth_gasPrice", []), 16)
        tx = {
            "to": self._token,
            "value": 0,
            "data": data,
            "nonce": nonce,
            "gas": self.config.gas_limit,
            "gasPrice": gas_price,
            "chainId": self.config.chain_id,
        }
        signed = self._account.sign_transaction(tx)
        raw_hex = "0x" + bytes(signed.raw_transaction).hex()
        tx_hash = self._rpc("eth_sendRawTransaction", [raw_hex])
        logger.info(
            "Submitted USDC transfer %s → %s (%s)",
            format_usd_from_micros(amount_micros),
            destination,
            tx_hash,
        )
        return tx_hash

    def _wait_for_receipt(self, tx_hash: str) -> dict:
        deadline = time.monotonic() + self.config.receipt_timeout_seconds
        while True:
            receipt = self._rpc("eth_getTransactionReceipt", [tx_hash])
            if receipt:
                return receipt
            if time.monotonic() >= deadline:
                raise SettlementError(f"Timed out waiting for receipt of {tx_hash}")
            self._sleep(self._poll_interval)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _pad_address(address: str) -> str:
    return address.lower().removeprefix("0x").rjust(64, "0")


def build_settlement(config: SettlementConfig) -> SettlementOracle:
    """Pick the settlement strategy named by `config.mode`."""
    if config.mode == "mock":
        return MockSettlement(
            balance=config.mock_balance_usd,
            delay_seconds=config.mock_delay_seconds,
            explorer_url=config.explorer_url,
        )
    if config.mode == "rpc":
        if not config.private_key:
            raise SettlementConfigError("rpc settlement requires a wallet private key")
        return RpcSettlement.from_private_key(config.private_key, config=config)
    raise SettlementConfigError(f"Unknown settlement mode: {config.mode}")
