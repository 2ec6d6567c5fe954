"""Tests for the pricing calculator."""

from dataclasses import dataclass

import pytest
from ordering.order.pricing import (
    FLAT_SHIPPING_FEE,
    TAX_RATE,
    PriceBreakdown,
    discrepancies,
    price,
)


@dataclass
class _Line:
    price: float
    quantity: int


class TestPrice:
    def test_free_shipping_above_threshold(self):
        breakdown = price([_Line(34.99, 2)])
        assert breakdown.items_price == pytest.approx(69.98)
        assert breakdown.tax_price == pytest.approx(69.98 * TAX_RATE)
        assert breakdown.shipping_price == 0.0
        assert breakdown.for_display() == {
            "items_price": 69.98,
            "tax_price": 5.60,
            "shipping_price": 0.0,
            "total_price": 75.58,
        }

    def test_flat_shipping_below_threshold(self):
        breakdown = price([_Line(20.00, 1)])
        assert breakdown.shipping_price == FLAT_SHIPPING_FEE
        assert breakdown.for_display()["total_price"] == 31.60

    def test_threshold_itself_is_charged_shipping(self):
        breakdown = price([_Line(25.00, 2)])
        assert breakdown.items_price == 50.00
        assert breakdown.shipping_price == FLAT_SHIPPING_FEE

    @pytest.mark.parametrize(
        "lines",
        [
            [_Line(0.1, 3), _Line(0.2, 7)],
            [_Line(34.99, 2), _Line(12.5, 1), _Line(19.99, 3)],
            [_Line(1.005, 9)],
        ],
    )
    def test_total_is_exact_sum_of_components(self, lines):
        breakdown = price(lines)
        assert breakdown.total_price == breakdown.items_price + breakdown.tax_price + breakdown.shipping_price

    def test_internal_values_are_not_rounded(self):
        breakdown = price([_Line(34.99, 2)])
        assert breakdown.tax_price != round(breakdown.tax_price, 2)

    def test_display_rounds_half_up(self):
        breakdown = PriceBreakdown(items_price=0.125, tax_price=0.0, shipping_price=0.0, total_price=0.125)
        assert breakdown.for_display()["items_price"] == 0.13


class TestDiscrepancies:
    def test_matching_client_values_report_nothing(self):
        breakdown = price([_Line(34.99, 2)])
        assert discrepancies({"items_price": 69.98, "tax_price": 5.60, "total_price": 75.58}, breakdown) == {}

    def test_mismatch_reported_with_both_values(self):
        breakdown = price([_Line(34.99, 2)])
        result = discrepancies({"total_price": 1.00, "shipping_price": 0.0}, breakdown)
        assert list(result) == ["total_price"]
        assert result["total_price"]["client"] == 1.00
        assert result["total_price"]["server"] == pytest.approx(75.5784)

    def test_missing_fields_ignored(self):
        breakdown = price([_Line(20.00, 1)])
        assert discrepancies({"tax_price": None}, breakdown) == {}
