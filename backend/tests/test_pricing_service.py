"""
Pricing engine tests. Pure computation; no database.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from backoffice.services.pricing_service import (
    PricingItem,
    apply_pricing_to_sale,
    calculate_discount_amount,
    calculate_discount_percentage,
    calculate_discounted_unit_price,
    price_sale,
    unit_price_for,
)
from backoffice.validation import ValidationError


def _item(product_id, quantity, unit_price):
    return PricingItem(product_id=product_id, quantity=quantity, unit_price=Decimal(unit_price))


def test_final_price_drives_discount():
    result = price_sale([_item(1, 2, "40.50")], packaging_price=Decimal("5.00"), final_price=Decimal("75.00"))

    assert result.subtotal == Decimal("81.00")
    assert result.suggested_total == Decimal("86.00")
    assert result.final_total == Decimal("75.00")
    assert result.discount_amount == Decimal("11.00")
    assert result.discount_percentage == Decimal("12.7907")
    assert result.lines[0].suggested_unit_price == Decimal("40.50")
    assert result.lines[0].discounted_unit_price == Decimal("35.32")


def test_suggested_total_includes_every_line_and_packaging():
    items = [_item(1, 3, "12.00"), _item(2, 1, "7.25")]

    result = price_sale(items, packaging_price=Decimal("1.50"))

    assert result.suggested_total == Decimal("44.75")
    assert result.final_total == result.suggested_total
    assert result.discount_percentage == Decimal("0")
    assert [line.discounted_unit_price for line in result.lines] == [Decimal("12.00"), Decimal("7.25")]


def test_discount_percentage_drives_final_price():
    result = price_sale([_item(1, 4, "25.00")], discount_percentage=Decimal("10"))

    assert result.suggested_total == Decimal("100.00")
    assert result.discount_amount == Decimal("10.00")
    assert result.final_total == Decimal("90.00")
    assert result.lines[0].discounted_unit_price == Decimal("22.50")


def test_final_price_wins_over_discount_percentage():
    result = price_sale(
        [_item(1, 1, "100.00")],
        final_price=Decimal("80.00"),
        discount_percentage=Decimal("50"),
    )

    assert result.final_total == Decimal("80.00")
    assert result.discount_percentage == Decimal("20.0000")


def test_markup_is_a_negative_discount():
    result = price_sale([_item(1, 1, "50.00")], final_price=Decimal("60.00"))

    assert result.discount_percentage == Decimal("-20.0000")
    assert result.lines[0].discounted_unit_price == Decimal("60.00")


def test_markup_beyond_the_stored_range_is_rejected():
    result = price_sale([_item(1, 1, "1.00")], final_price=Decimal("10.99"))
    assert result.discount_percentage == Decimal("-999.0000")

    with pytest.raises(ValidationError):
        price_sale([_item(1, 1, "1.00")], final_price=Decimal("11.00"))
    with pytest.raises(ValidationError):
        price_sale([_item(1, 1, "1.00")], final_price=Decimal("99999999.00"))


def test_zero_suggested_total_means_zero_discount():
    assert calculate_discount_percentage(Decimal("0"), Decimal("10.00")) == Decimal("0")

    result = price_sale([_item(1, 1, "0.00")], final_price=Decimal("10.00"))
    assert result.discount_percentage == Decimal("0")
    assert result.final_total == Decimal("10.00")


def test_rounding_is_half_up():
    assert calculate_discount_amount(Decimal("0.25"), Decimal("10")) == Decimal("0.03")
    assert calculate_discounted_unit_price(Decimal("0.05"), Decimal("50")) == Decimal("0.03")


def test_rejects_empty_and_non_positive_quantities():
    with pytest.raises(ValidationError):
        price_sale([])
    with pytest.raises(ValidationError):
        price_sale([_item(1, 0, "10.00")])


def test_unit_price_follows_sale_channel():
    product = SimpleNamespace(
        final_selling_price_retail=Decimal("40.50"),
        final_selling_price_wholesale=Decimal("25.11"),
    )
    assert unit_price_for(product, False) == Decimal("40.50")
    assert unit_price_for(product, True) == Decimal("25.11")

    unpriced = SimpleNamespace(final_selling_price_retail=None, final_selling_price_wholesale=None)
    assert unit_price_for(unpriced, False) == Decimal("0.00")


def test_apply_pricing_writes_header_and_lines():
    lines = [SimpleNamespace(suggested_price_at_the_time=None, price_at_the_time=None)]
    sale = SimpleNamespace(lines=lines)
    result = price_sale([_item(1, 2, "40.50")], packaging_price=Decimal("5.00"), final_price=Decimal("75.00"))

    apply_pricing_to_sale(sale, result)

    assert sale.suggested_total_price == Decimal("86.00")
    assert sale.final_total_price == Decimal("75.00")
    assert sale.discount_percentage == Decimal("12.7907")
    assert lines[0].price_at_the_time == Decimal("35.32")


def test_apply_pricing_rejects_mismatched_lines():
    sale = SimpleNamespace(lines=[])
    result = price_sale([_item(1, 1, "10.00")])

    with pytest.raises(ValueError):
        apply_pricing_to_sale(sale, result)
