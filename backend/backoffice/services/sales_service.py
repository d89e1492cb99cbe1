# Overview: Service-layer operations for sales; records, re-prices and deletes a sale as one unit of work.

"""
Sale transaction coordinator

RECORD (one commit, all or nothing):
    location -> customer (optional) -> acting user -> every product
    -> build sale + lines -> price -> flush -> DEDUCT stock
    -> stamp customer first sale date -> commit

UPDATE:
    header fields only (location, customer, date, packaging, final price,
    payment method); lines are re-priced from the unit price captured at sale
    time. Stock and line membership are untouched.

DELETE:
    RESTORE stock for every line, then hard-delete the sale and its lines.

Every operation runs under run_with_retry: concurrency failures are retried,
anything else rolls the session back and propagates.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..extensions import db
from ..models import Customer, Location, Product, Sale, SaleLine, User
from ..models.sales import PAYMENT_METHOD_LABELS, PAYMENT_METHODS
from ..time_utils import today
from ..validation import ValidationError, parse_date, parse_decimal, parse_int
from .catalog_service import require_entity
from .concurrency import run_with_retry
from .pricing_service import (
    MAX_DISCOUNT_PERCENTAGE,
    MIN_DISCOUNT_PERCENTAGE,
    PricingItem,
    apply_pricing_to_sale,
    price_sale,
    unit_price_for,
)
from .stock_service import apply_sale_effect


MIN_FINAL_PRICE = Decimal("0.01")


def list_payment_methods() -> list[dict]:
    return [{"value": m, "label": PAYMENT_METHOD_LABELS[m]} for m in PAYMENT_METHODS]


def _parse_payment_method(value) -> str:
    if value is None:
        return "CASH"
    method = str(value).strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{value}'. Must be one of: {', '.join(PAYMENT_METHODS)}"
        )
    return method


def _parse_is_wholesale(value) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError("is_wholesale must be true or false")
    return value


def _parse_sale_date(value) -> date:
    sale_date = parse_date(value, "sale_date") if value is not None else today()
    if sale_date > today():
        raise ValidationError("Sale date cannot be in the future")
    return sale_date


def _parse_packaging(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return parse_decimal(value, "packaging_price", integer_digits=4, minimum=Decimal("0"))


def _parse_final_price(value) -> Decimal | None:
    if value is None:
        return None
    return parse_decimal(value, "final_price", integer_digits=8, minimum=MIN_FINAL_PRICE)


def _parse_discount(value) -> Decimal | None:
    if value is None:
        return None
    return parse_decimal(
        value,
        "discount_percentage",
        integer_digits=3,
        decimal_places=4,
        minimum=MIN_DISCOUNT_PERCENTAGE,
        maximum=MAX_DISCOUNT_PERCENTAGE,
    )


def _parse_items(items) -> list[tuple[int, int]]:
    """
    Normalize [{"product_id", "quantity"}, ...] into ordered (product_id, quantity) pairs.

    Repeated product ids are merged into one line, keeping first-seen order.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Sale must contain at least one item")

    merged: dict[int, int] = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object with product_id and quantity")
        product_id = parse_int(raw.get("product_id"), "product_id", minimum=1)
        quantity = parse_int(raw.get("quantity"), "quantity", minimum=1)
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


def _resolve_products(pairs: list[tuple[int, int]]) -> list[tuple[Product, int]]:
    resolved = []
    for product_id, quantity in pairs:
        product = require_entity(Product, product_id)
        if not product.is_active:
            raise ValidationError(f"Product {product.code} is inactive", {"product_id": product_id})
        resolved.append((product, quantity))
    return resolved


def _resolve_customer(customer_id) -> Customer | None:
    if customer_id is None:
        return None
    return require_entity(Customer, parse_int(customer_id, "customer_id", minimum=1))


def get_sale(sale_id: int) -> Sale:
    return require_entity(Sale, sale_id)


def record_sale(payload: dict, *, actor_user_id: int) -> Sale:
    """
    Record a sale, price it and deduct stock in a single commit.

    payload keys: location_id, customer_id?, sale_date?, is_wholesale?, items,
    packaging_price?, final_price?, discount_percentage?, payment_method?
    """
    payload = payload or {}

    def _op():
        location = require_entity(Location, parse_int(payload.get("location_id"), "location_id", minimum=1))
        customer = _resolve_customer(payload.get("customer_id"))
        require_entity(User, actor_user_id)

        products = _resolve_products(_parse_items(payload.get("items")))

        sale_date = _parse_sale_date(payload.get("sale_date"))
        is_wholesale = _parse_is_wholesale(payload.get("is_wholesale"))
        packaging = _parse_packaging(payload.get("packaging_price"))
        final_price = _parse_final_price(payload.get("final_price"))
        discount = _parse_discount(payload.get("discount_percentage"))
        payment_method = _parse_payment_method(payload.get("payment_method"))

        sale = Sale(
            location_id=location.id,
            customer_id=customer.id if customer else None,
            sale_date=sale_date,
            is_wholesale=is_wholesale,
            payment_method=payment_method,
            created_by_user_id=actor_user_id,
            updated_by_user_id=actor_user_id,
        )
        items = []
        for product, quantity in products:
            unit_price = unit_price_for(product, is_wholesale)
            sale.lines.append(SaleLine(
                product_id=product.id,
                product_name_snapshot=product.name,
                quantity=quantity,
                suggested_price_at_the_time=unit_price,
                price_at_the_time=unit_price,
            ))
            items.append(PricingItem(product_id=product.id, quantity=quantity, unit_price=unit_price))

        result = price_sale(
            items,
            packaging_price=packaging,
            final_price=final_price,
            discount_percentage=discount,
        )
        apply_pricing_to_sale(sale, result)

        db.session.add(sale)
        db.session.flush()

        apply_sale_effect(sale.lines, "DEDUCT")

        if customer is not None and customer.first_sale_date is None:
            customer.first_sale_date = sale_date

        db.session.commit()
        return sale

    return run_with_retry(_op)


def update_sale(sale_id: int, payload: dict, *, actor_user_id: int) -> Sale:
    """
    Update a sale's header and re-price it over its existing lines.

    Keys left out of the payload keep their current value. When neither
    final_price nor discount_percentage is given, the current final total is
    kept as the target and the discount is re-derived.
    """
    payload = payload or {}

    def _op():
        sale = require_entity(Sale, sale_id)
        require_entity(User, actor_user_id)

        if "location_id" in payload:
            location = require_entity(Location, parse_int(payload["location_id"], "location_id", minimum=1))
            sale.location_id = location.id
        if "customer_id" in payload:
            customer = _resolve_customer(payload["customer_id"])
            sale.customer_id = customer.id if customer else None
        if "sale_date" in payload:
            sale.sale_date = _parse_sale_date(payload["sale_date"])
        if "payment_method" in payload:
            sale.payment_method = _parse_payment_method(payload["payment_method"])

        packaging = (
            _parse_packaging(payload.get("packaging_price"))
            if "packaging_price" in payload
            else sale.packaging_price
        )
        final_price = _parse_final_price(payload.get("final_price"))
        discount = _parse_discount(payload.get("discount_percentage"))
        if final_price is None and discount is None:
            final_price = sale.final_total_price

        items = [
            PricingItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.suggested_price_at_the_time,
            )
            for line in sale.lines
        ]
        result = price_sale(
            items,
            packaging_price=packaging,
            final_price=final_price,
            discount_percentage=discount,
        )
        apply_pricing_to_sale(sale, result)
        sale.updated_by_user_id = actor_user_id

        db.session.commit()
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int, *, actor_user_id: int) -> None:
    """Restore every line's stock, then hard-delete the sale and its lines."""
    def _op():
        sale = require_entity(Sale, sale_id)
        require_entity(User, actor_user_id)

        apply_sale_effect(sale.lines, "RESTORE")

        db.session.delete(sale)
        db.session.commit()

    run_with_retry(_op)


def calculate_cart_pricing(payload: dict) -> dict:
    """
    Read-only price preview for a cart: same computation as record_sale, nothing persisted.
    """
    payload = payload or {}
    products = _resolve_products(_parse_items(payload.get("items")))
    is_wholesale = _parse_is_wholesale(payload.get("is_wholesale"))

    items = [
        PricingItem(product_id=p.id, quantity=qty, unit_price=unit_price_for(p, is_wholesale))
        for p, qty in products
    ]
    result = price_sale(
        items,
        packaging_price=_parse_packaging(payload.get("packaging_price")),
        final_price=_parse_final_price(payload.get("final_price")),
        discount_percentage=_parse_discount(payload.get("discount_percentage")),
    )

    body = result.to_dict()
    for line_dict, (product, _) in zip(body["lines"], products):
        line_dict["product_code"] = product.code
        line_dict["product_name"] = product.name
    body["is_wholesale"] = is_wholesale
    return body
