"""Subjects an agent can act on: suppliers and influencers."""

from __future__ import annotations

from dataclasses import MISSING, asdict, dataclass, field, fields
import math
from typing import Any, Callable


def _number(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("number must be finite")
    return number


def _count(value: Any) -> int:
    number = _number(value)
    if not number.is_integer():
        raise ValueError("count must be a whole number")
    return int(number)


def _from_mapping(
    cls,
    data: dict[str, Any],
    aliases: dict[str, str],
    numbers: dict[str, Callable[[Any], Any]],
):
    known = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        name = aliases.get(key, key)
        if name not in known:
            continue
        convert = numbers.get(name)
        if convert is not None:
            try:
                value = convert(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{cls.__name__}.{name} must be numeric, got {value!r}") from e
        kwargs[name] = value
    missing = [
        f.name for f in fields(cls)
        if f.name not in kwargs and f.default is MISSING and f.default_factory is MISSING
    ]
    if missing:
        raise ValueError(f"{cls.__name__} missing fields: {', '.join(missing)}")
    return cls(**kwargs)


@dataclass(frozen=True)
class SupplierPriceData:
    """A supplier quote the procurement agent may buy from."""

    supplier: str
    product: str
    current_price: float
    target_price: float
    supplier_wallet: str
    historical_prices: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "historical_prices", tuple(self.historical_prices))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SupplierPriceData":
        return _from_mapping(cls, data, {
            "currentPrice": "current_price",
            "targetPrice": "target_price",
            "historicalPrices": "historical_prices",
            "supplierWallet": "supplier_wallet",
        }, numbers={
            "current_price": _number,
            "target_price": _number,
            "historical_prices": lambda v: tuple(_number(p) for p in v),
        })

    def to_dict(self) -> dict:
        d = asdict(self)
        d["historical_prices"] = list(self.historical_prices)
        return d


@dataclass(frozen=True)
class InfluencerData:
    """An influencer the marketing agent may pay for posts."""

    handle: str
    platform: str
    followers: int
    engagement_rate: float
    niche: str
    requested_rate: float
    wallet_address: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InfluencerData":
        return _from_mapping(cls, data, {
            "engagementRate": "engagement_rate",
            "requestedRate": "requested_rate",
            "walletAddress": "wallet_address",
        }, numbers={
            "followers": _count,
            "engagement_rate": _number,
            "requested_rate": _number,
        })

    def to_dict(self) -> dict:
        return asdict(self)
