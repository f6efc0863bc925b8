"""USDC amount helpers using fixed micro-dollar precision."""

from __future__ import annotations

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, localcontext
from typing import Optional


MICROS_PER_USD = 1_000_000
_USD_QUANT = Decimal("0.000001")


def _to_micros(value: Decimal | float | int | str, rounding: Optional[str]) -> int:
    dec = Decimal(str(value))
    # Quantizing to 6 places needs every integer digit plus the fraction.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, dec.adjusted() + 8)
        return int(dec.quantize(_USD_QUANT, rounding=rounding) * MICROS_PER_USD)


def amount_usd_to_micros(value: Decimal | float | int | str) -> int:
    """Convert a spend amount to micro-dollars, rounding up (conservative)."""
    return _to_micros(value, ROUND_CEILING)


def limit_usd_to_micros(value: Decimal | float | int | str) -> int:
    """Convert a budget limit to micro-dollars, rounding down (conservative)."""
    return _to_micros(value, ROUND_FLOOR)


def micros_to_usd_decimal(value: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(value))) + 8)
        return (Decimal(value) / Decimal(MICROS_PER_USD)).quantize(_USD_QUANT)


def micros_to_usd_float(value: int) -> float:
    """Convert integer micro-dollars to float USD (for display and oracle APIs)."""
    return float(micros_to_usd_decimal(value))


def micros_to_base_units(value: int, decimals: int = 6) -> int:
    """Convert micro-dollars to token base units for a token with `decimals`."""
    if decimals >= 6:
        return value * 10 ** (decimals - 6)
    return value // 10 ** (6 - decimals)


def format_usd(value: float | int | Decimal) -> str:
    """Format a USD amount the way event thoughts show it ($14.5, $200)."""
    dec = Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, dec.adjusted() + 8)
        text = format(dec.quantize(_USD_QUANT).normalize(), "f")
    return f"${text}"


def format_usd_from_micros(value: int) -> str:
    """Format integer micro-dollars as a currency string."""
    return f"${micros_to_usd_decimal(value):.2f}"
