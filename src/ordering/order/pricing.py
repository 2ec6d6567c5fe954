"""Pricing Calculator: derives tax, shipping and total from order lines.

Pure functions, no I/O. Internal values keep full float precision; rounding to
cents happens only in ``PriceBreakdown.for_display()``.
"""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

TAX_RATE = 0.08
FREE_SHIPPING_THRESHOLD = 50.00
FLAT_SHIPPING_FEE = 10.00

# Client-supplied values within a cent of the server's are not reported
CLIENT_TOLERANCE = 0.01

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float

    def for_display(self) -> dict[str, float]:
        """Currency-rounded copy (2 decimal places, half-up)."""
        return {name: _round_currency(value) for name, value in asdict(self).items()}


def _round_currency(value: float) -> float:
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def price(lines) -> PriceBreakdown:
    """Price a sequence of lines exposing ``price`` and ``quantity``."""
    items_price = sum(float(line.price) * int(line.quantity) for line in lines)
    tax_price = items_price * TAX_RATE
    shipping_price = 0.0 if items_price > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE
    total_price = items_price + tax_price + shipping_price

    return PriceBreakdown(
        items_price=items_price,
        tax_price=tax_price,
        shipping_price=shipping_price,
        total_price=total_price,
    )


def discrepancies(client_values: dict, breakdown: PriceBreakdown) -> dict[str, dict[str, float]]:
    """Client-supplied price fields that disagree with the server's breakdown.

    Fields the client did not send (or sent as None) are ignored. Returns
    ``{field: {"client": value, "server": value}}`` for every mismatch.
    """
    mismatches = {}
    for name, server_value in asdict(breakdown).items():
        client_value = client_values.get(name)
        if client_value is None:
            continue
        if abs(float(client_value) - server_value) > CLIENT_TOLERANCE:
            mismatches[name] = {"client": float(client_value), "server": server_value}
    return mismatches
