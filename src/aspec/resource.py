"""
Pay-to-unlock resource access (HTTP 402 style).

Flow per fetch:
1. Ask the pricing policy whether the resource is priced (None = free)
2. Refuse amounts above the caller's auto-pay ceiling unless pre-approved
3. Refuse expired payment requirements
4. Settle the amount due and return the payload with a receipt

Receipts are kept per resource, latest wins. Whether a stored receipt can
unlock the payload again without paying is a `ReceiptPolicy` choice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional

from . import catalog
from .errors import PaymentExpiredError, PaymentLimitExceededError, ResourceError
from .money import format_usd
from .settlement import SettlementOracle, TransactionResult

logger = logging.getLogger(__name__)

DEFAULT_AUTO_PAY_LIMIT = 10.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentRequirement:
    """What a priced resource asks for before it unlocks."""

    amount_due: float
    currency: str
    payee_address: str
    network: str
    description: str
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    def to_dict(self) -> dict:
        return {
            "amount_due": self.amount_due,
            "currency": self.currency,
            "payee_address": self.payee_address,
            "network": self.network,
            "description": self.description,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class PaymentReceipt:
    paid: bool
    reference: Optional[str]
    amount_due: float
    timestamp: datetime
    resource_id: str
    expires_at: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        if not self.paid:
            return False
        return self.expires_at is None or self.expires_at > (now or utcnow())

    def to_dict(self) -> dict:
        return {
            "paid": self.paid,
            "reference": self.reference,
            "amount_due": self.amount_due,
            "timestamp": self.timestamp.isoformat(),
            "resource_id": self.resource_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


class ResourceErrorCode(str, Enum):
    PAYMENT_EXCEEDS_AUTO_PAY_LIMIT = "payment_exceeds_auto_pay_limit"
    PAYMENT_EXPIRED = "payment_expired"
    SETTLEMENT_FAILED = "settlement_failed"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class ResourceResponse:
    success: bool
    payload: Any = None
    payment_requirement: Optional[PaymentRequirement] = None
    receipt: Optional[PaymentReceipt] = None
    error: Optional[str] = None
    error_code: Optional[ResourceErrorCode] = None
    reused_receipt: bool = False

    def raise_for_status(self) -> "ResourceResponse":
        """Turn a payment failure into the matching exception."""
        if self.success:
            return self
        if self.error_code is ResourceErrorCode.PAYMENT_EXCEEDS_AUTO_PAY_LIMIT:
            raise PaymentLimitExceededError(self.error or "", self.payment_requirement)
        if self.error_code is ResourceErrorCode.PAYMENT_EXPIRED:
            raise PaymentExpiredError(self.error or "", self.payment_requirement)
        raise ResourceError(self.error or "Resource fetch failed", self.payment_requirement)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "payload": self.payload,
            "payment_requirement": (
                self.payment_requirement.to_dict() if self.payment_requirement else None
            ),
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
            "reused_receipt": self.reused_receipt,
        }


class ReceiptPolicy(str, Enum):
    PAY_PER_ACCESS = "pay_per_access"  # every fetch pays again
    REUSE_UNEXPIRED = "reuse_unexpired"  # a valid stored receipt unlocks again


@dataclass(frozen=True)
class PriceTier:
    amount_due: float
    payee_address: str
    description: str
    currency: str = "USDC"
    network: str = "ARC"
    ttl: Optional[timedelta] = None


@dataclass
class PriceTable:
    """Substring pricing rules; the first matching pattern wins."""

    rules: list[tuple[str, PriceTier]] = field(default_factory=list)
    clock: Callable[[], datetime] = utcnow

    def __call__(self, resource_id: str) -> Optional[PaymentRequirement]:
        for pattern, tier in self.rules:
            if pattern in resource_id:
                return PaymentRequirement(
                    amount_due=tier.amount_due,
                    currency=tier.currency,
                    payee_address=tier.payee_address,
                    network=tier.network,
                    description=tier.description,
                    expires_at=self.clock() + tier.ttl if tier.ttl is not None else None,
                )
        return None


def default_pricing() -> PriceTable:
    return PriceTable(rules=[
        ("/influencer/premium", PriceTier(
            5, "0xINFLUENCER_WALLET_ADDRESS", "Premium influencer data access",
            ttl=timedelta(hours=1),
        )),
        ("/influencer/basic", PriceTier(1, "0xINFLUENCER_WALLET_ADDRESS", "Basic influencer data access")),
        ("/marketing/campaign", PriceTier(10, "0xMARKETING_SERVICE_WALLET", "Campaign execution fee")),
        ("/supplier/data", PriceTier(2, "0xSUPPLIER_DATA_WALLET", "Real-time supplier pricing data")),
    ])


def default_payloads(resource_id: str) -> Any:
    if "/influencer" in resource_id:
        return catalog.influencer_listing()
    if "/supplier" in resource_id:
        return catalog.supplier_listing()
    return {"status": "ok"}


class ResourceAccessClient:
    """Negotiates payment for priced resources within an auto-pay ceiling."""

    def __init__(
        self,
        settlement: SettlementOracle,
        pricing: Optional[Callable[[str], Optional[PaymentRequirement]]] = None,
        payloads: Callable[[str], Any] = default_payloads,
        receipt_policy: ReceiptPolicy = ReceiptPolicy.PAY_PER_ACCESS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settlement = settlement
        self.pricing = pricing or default_pricing()
        self.payloads = payloads
        self.receipt_policy = receipt_policy
        self._clock = clock
        self._receipts: dict[str, PaymentReceipt] = {}

    def fetch_resource(
        self,
        resource_id: str,
        auto_pay_limit: float = DEFAULT_AUTO_PAY_LIMIT,
        already_approved: bool = False,
    ) -> ResourceResponse:
        requirement: Optional[PaymentRequirement] = None
        try:
            requirement = self.pricing(resource_id)
            return self._fetch(resource_id, requirement, auto_pay_limit, already_approved)
        except Exception as e:
            logger.exception("Resource fetch failed for %s", resource_id)
            return ResourceResponse(
                success=False,
                payment_requirement=requirement,
                error=str(e) or "Resource request failed",
                error_code=ResourceErrorCode.FETCH_FAILED,
            )

    def _fetch(
        self,
        resource_id: str,
        requirement: Optional[PaymentRequirement],
        auto_pay_limit: float,
        already_approved: bool,
    ) -> ResourceResponse:
        if requirement is None:
            return ResourceResponse(success=True, payload=self.payloads(resource_id))

        if self.receipt_policy is ReceiptPolicy.REUSE_UNEXPIRED:
            stored = self._receipts.get(resource_id)
            if stored is not None and stored.is_valid(self._clock()):
                logger.info("Reusing receipt %s for %s", stored.reference, resource_id)
                return ResourceResponse(
                    success=True,
                    payload=self.payloads(resource_id),
                    receipt=stored,
                    reused_receipt=True,
                )

        if requirement.amount_due > auto_pay_limit and not already_approved:
            logger.info(
                "Payment for %s (%s) exceeds auto-pay limit %s",
                resource_id,
                format_usd(requirement.amount_due),
                format_usd(auto_pay_limit),
            )
            return ResourceResponse(
                success=False,
                payment_requirement=requirement,
                error=(
                    f"Payment of {format_usd(requirement.amount_due)} exceeds auto-pay "
                    f"limit of {format_usd(auto_pay_limit)}"
                ),
                error_code=ResourceErrorCode.PAYMENT_EXCEEDS_AUTO_PAY_LIMIT,
            )

        if requirement.is_expired(self._clock()):
            return ResourceResponse(
                success=False,
                payment_requirement=requirement,
                error="Payment request has expired",
                error_code=ResourceErrorCode.PAYMENT_EXPIRED,
            )

        try:
            result = self.settlement.transfer(requirement.payee_address, requirement.amount_due)
        except Exception as e:
            logger.exception("Payment for %s raised", resource_id)
            result = TransactionResult.failed(
                f"{type(e).__name__}: {e}", amount=requirement.amount_due
            )
        if not result.success:
            logger.warning("Payment for %s failed: %s", resource_id, result.error_reason)
            return ResourceResponse(
                success=False,
                payment_requirement=requirement,
                error=result.error_reason or "Payment failed",
                error_code=ResourceErrorCode.SETTLEMENT_FAILED,
            )

        receipt = PaymentReceipt(
            paid=True,
            reference=result.reference,
            amount_due=requirement.amount_due,
            timestamp=self._clock(),
            resource_id=resource_id,
            expires_at=requirement.expires_at,
        )
        self._receipts[resource_id] = receipt
        logger.info(
            "Paid %s for %s (%s)",
            format_usd(requirement.amount_due),
            resource_id,
            result.reference,
        )
        return ResourceResponse(
            success=True,
            payload=self.payloads(resource_id),
            receipt=receipt,
        )

    def get_receipt(self, resource_id: str) -> Optional[PaymentReceipt]:
        return self._receipts.get(resource_id)

    def all_receipts(self) -> list[PaymentReceipt]:
        return list(self._receipts.values())
