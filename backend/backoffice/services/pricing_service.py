# Overview: Service-layer operations for sale pricing; pure Decimal computation, no persistence.

"""
Sale pricing engine

A sale is priced from its line items and packaging surcharge against either a
user-chosen final price or a target discount percentage:

    suggested_total      = sum(unit_price x quantity) + packaging_price
    discount_percentage  = (suggested_total - final) / suggested_total x 100   (4 dp)
    discounted_unit      = unit_price x (1 - discount_percentage / 100)      (2 dp)

If a final price is given it wins over a discount percentage. If neither is
given the sale carries no discount. A negative discount (a markup) is valid.

Re-pricing is always a full recompute from the inputs; nothing here reads or
writes the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from ..money import HUNDRED, ZERO, quantize_money, quantize_percent, to_decimal
from ..validation import ValidationError


# A negative discount is a markup; the floor keeps it within the stored column range
MIN_DISCOUNT_PERCENTAGE = Decimal("-999.99")
MAX_DISCOUNT_PERCENTAGE = Decimal("100")


@dataclass(frozen=True)
class PricingItem:
    product_id: int
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    suggested_unit_price: Decimal
    discounted_unit_price: Decimal

    @property
    def suggested_line_total(self) -> Decimal:
        return quantize_money(self.suggested_unit_price * self.quantity)

    @property
    def discounted_line_total(self) -> Decimal:
        return quantize_money(self.discounted_unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "suggested_unit_price": str(self.suggested_unit_price),
            "discounted_unit_price": str(self.discounted_unit_price),
            "suggested_line_total": str(self.suggested_line_total),
            "discounted_line_total": str(self.discounted_line_total),
        }


@dataclass(frozen=True)
class SalePricingResult:
    subtotal: Decimal
    packaging_price: Decimal
    suggested_total: Decimal
    final_total: Decimal
    discount_amount: Decimal
    discount_percentage: Decimal
    lines: tuple[PricedLine, ...]

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "packaging_price": str(self.packaging_price),
            "suggested_total": str(self.suggested_total),
            "final_total": str(self.final_total),
            "discount_amount": str(self.discount_amount),
            "discount_percentage": str(self.discount_percentage),
            "lines": [line.to_dict() for line in self.lines],
        }


def unit_price_for(product, is_wholesale: bool) -> Decimal:
    """The product's own selling price for the channel; a missing price counts as zero."""
    if is_wholesale:
        return quantize_money(product.final_selling_price_wholesale)
    return quantize_money(product.final_selling_price_retail)


def calculate_subtotal(items: Iterable[PricingItem]) -> Decimal:
    return quantize_money(sum((to_decimal(i.unit_price) * i.quantity for i in items), ZERO))


def calculate_suggested_total(items: Sequence[PricingItem], packaging_price) -> Decimal:
    return quantize_money(calculate_subtotal(items) + to_decimal(packaging_price))


def calculate_discount_percentage(suggested_total, final_price) -> Decimal:
    suggested = to_decimal(suggested_total)
    if suggested == ZERO:
        return quantize_percent(ZERO)
    return quantize_percent((suggested - to_decimal(final_price)) / suggested * HUNDRED)


def calculate_discount_amount(total, discount_percentage) -> Decimal:
    return quantize_money(to_decimal(total) * to_decimal(discount_percentage) / HUNDRED)


def calculate_discounted_unit_price(unit_price, discount_percentage) -> Decimal:
    factor = Decimal(1) - to_decimal(discount_percentage) / HUNDRED
    return quantize_money(to_decimal(unit_price) * factor)


def price_sale(
    items: Sequence[PricingItem],
    *,
    packaging_price=ZERO,
    final_price=None,
    discount_percentage=None,
) -> SalePricingResult:
    """
    Price a sale. `final_price` wins over `discount_percentage` when both are given.

    Raises ValidationError for an empty item list, a non-positive quantity, or a
    final price whose markup goes past MIN_DISCOUNT_PERCENTAGE.
    """
    if not items:
        raise ValidationError("Sale must contain at least one item")
    for item in items:
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", {"product_id": item.product_id})

    packaging = quantize_money(packaging_price)
    subtotal = calculate_subtotal(items)
    suggested_total = quantize_money(subtotal + packaging)

    if final_price is not None:
        final_total = quantize_money(final_price)
        pct = calculate_discount_percentage(suggested_total, final_total)
        if not MIN_DISCOUNT_PERCENTAGE <= pct <= MAX_DISCOUNT_PERCENTAGE:
            raise ValidationError(
                f"Final price {final_total} is out of range for suggested total {suggested_total}",
                {"discount_percentage": str(pct)},
            )
    elif discount_percentage is not None:
        pct = quantize_percent(discount_percentage)
        final_total = suggested_total - calculate_discount_amount(suggested_total, pct)
    else:
        final_total = suggested_total
        pct = quantize_percent(ZERO)

    lines = tuple(
        PricedLine(
            product_id=item.product_id,
            quantity=item.quantity,
            suggested_unit_price=quantize_money(item.unit_price),
            discounted_unit_price=calculate_discounted_unit_price(item.unit_price, pct),
        )
        for item in items
    )

    return SalePricingResult(
        subtotal=subtotal,
        packaging_price=packaging,
        suggested_total=suggested_total,
        final_total=final_total,
        discount_amount=suggested_total - final_total,
        discount_percentage=pct,
        lines=lines,
    )


def apply_pricing_to_sale(sale, result: SalePricingResult) -> None:
    """
    Copy a pricing result onto a Sale and its lines.

    Lines are matched positionally; callers build `items` from `sale.lines` in order.
    """
    if len(result.lines) != len(sale.lines):
        raise ValueError("pricing result does not match sale lines")

    sale.packaging_price = result.packaging_price
    sale.suggested_total_price = result.suggested_total
    sale.final_total_price = result.final_total
    sale.discount_percentage = result.discount_percentage

    for line, priced in zip(sale.lines, result.lines):
        line.suggested_price_at_the_time = priced.suggested_unit_price
        line.price_at_the_time = priced.discounted_unit_price
