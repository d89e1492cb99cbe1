# Overview: Service-layer operations for material purchases from suppliers.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Material, Purchase, PurchaseLine, Supplier
from ..money import ZERO, quantize_money
from ..time_utils import today
from ..validation import ValidationError, parse_date, parse_decimal, parse_int
from .catalog_service import require_entity


def record_purchase(payload: dict, *, actor_user_id: int) -> Purchase:
    """
    Record a purchase of materials. total_cost = sum(quantity x unit price), cents half-up.

    payload: supplier_id, purchase_date?, lines: [{"material_id", "quantity", "unit_price"}]
    """
    payload = payload or {}
    supplier = require_entity(Supplier, parse_int(payload.get("supplier_id"), "supplier_id", minimum=1))
    if not supplier.is_active:
        raise ValidationError(f"Supplier {supplier.id} is inactive")

    raw_date = payload.get("purchase_date")
    purchase_date = parse_date(raw_date, "purchase_date") if raw_date is not None else today()
    if purchase_date > today():
        raise ValidationError("Purchase date cannot be in the future")

    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("Purchase must contain at least one line")

    purchase = Purchase(
        supplier_id=supplier.id,
        purchase_date=purchase_date,
        created_by_user_id=actor_user_id,
        updated_by_user_id=actor_user_id,
    )
    total = ZERO
    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise ValidationError("Each line must be an object")
        material = require_entity(Material, parse_int(raw.get("material_id"), "material_id", minimum=1))
        quantity = parse_decimal(
            raw.get("quantity"), "quantity", integer_digits=6,
            minimum=Decimal("0"), exclusive_minimum=True,
        )
        unit_price = parse_decimal(raw.get("unit_price"), "unit_price", integer_digits=8, minimum=Decimal("0"))
        purchase.lines.append(PurchaseLine(
            material_id=material.id,
            material_name_snapshot=material.name,
            quantity=quantity,
            price_at_the_time=unit_price,
        ))
        total += quantity * unit_price

    purchase.total_cost = quantize_money(total)
    db.session.add(purchase)
    db.session.commit()
    return purchase


def delete_purchase(purchase_id: int) -> None:
    """Purchases are always hard-deleted together with their lines."""
    purchase = require_entity(Purchase, purchase_id)
    db.session.delete(purchase)
    db.session.commit()
