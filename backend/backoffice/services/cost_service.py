# Overview: Service-layer operations for product costing; derives suggested prices from cost inputs.

"""
Product cost model

================================================================================
PURPOSE: Keep every product's suggested prices in sync with its cost inputs
================================================================================

COST COMPONENTS (per unit of product):
    material_cost  = sum(material.current_unit_cost x line.quantity)
    labor_cost     = round(minutes_to_make / 60, 4) x HOURLY_LABOR_RATE
    procedure_cost = sum(procedure_line.cost)
    total_cost     = material_cost + labor_cost + procedure_cost

SUGGESTED PRICES:
    retail    = total_cost x RETAIL_MARKUP_FACTOR      (cents, half-up)
    wholesale = total_cost x WHOLESALE_MARKUP_FACTOR   (cents, half-up)

WHEN TO RECOMPUTE:
- product created, minutes_to_make changed
- material/procedure line added or removed
- material unit cost changed (every product that uses it)
- on demand, for the whole catalog (recalculate_all_product_prices)

Functions here flush but never commit, except the bulk recalculation which is
its own unit of work.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Material, Product, ProductMaterial, ProductProcedure, User
from ..money import HOURS_PLACES, HUNDRED, ZERO, quantize_money, to_decimal
from ..time_utils import to_utc_z, utcnow


HOURLY_LABOR_RATE = Decimal("7.00")
RETAIL_MARKUP_FACTOR = Decimal("3.0")
WHOLESALE_MARKUP_FACTOR = Decimal("1.86")
MINUTES_PER_HOUR = Decimal("60")


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: Decimal
    labor_cost: Decimal
    procedure_cost: Decimal
    total_cost: Decimal
    suggested_retail: Decimal
    suggested_wholesale: Decimal

    def to_dict(self) -> dict:
        return {
            "material_cost": str(quantize_money(self.material_cost)),
            "labor_cost": str(quantize_money(self.labor_cost)),
            "procedure_cost": str(quantize_money(self.procedure_cost)),
            "total_cost": str(quantize_money(self.total_cost)),
            "suggested_retail_selling_price": str(self.suggested_retail),
            "suggested_wholesale_selling_price": str(self.suggested_wholesale),
        }


@dataclass
class PriceRecalculationResult:
    total_products: int = 0
    updated_products: int = 0
    skipped_products: int = 0
    failed_products: int = 0
    failed_product_codes: list[str] = field(default_factory=list)
    processed_at: datetime | None = None
    processed_by_username: str | None = None

    def to_dict(self) -> dict:
        return {
            "total_products": self.total_products,
            "updated_products": self.updated_products,
            "skipped_products": self.skipped_products,
            "failed_products": self.failed_products,
            "failed_product_codes": list(self.failed_product_codes),
            "processed_at": to_utc_z(self.processed_at),
            "processed_by_username": self.processed_by_username,
        }


def calculate_material_cost(product_id: int) -> Decimal:
    rows = (
        db.session.query(ProductMaterial.quantity, Material.current_unit_cost)
        .join(Material, Material.id == ProductMaterial.material_id)
        .filter(ProductMaterial.product_id == product_id)
        .all()
    )
    total = ZERO
    for quantity, unit_cost in rows:
        if quantity is None or unit_cost is None:
            continue
        total += to_decimal(unit_cost) * to_decimal(quantity)
    return total


def calculate_labor_cost(minutes_to_make: int | None) -> Decimal:
    if minutes_to_make is None or minutes_to_make <= 0:
        return ZERO
    hours = (Decimal(minutes_to_make) / MINUTES_PER_HOUR).quantize(HOURS_PLACES, rounding=ROUND_HALF_UP)
    return hours * HOURLY_LABOR_RATE


def calculate_procedure_cost(product_id: int) -> Decimal:
    costs = (
        db.session.query(ProductProcedure.cost)
        .filter(ProductProcedure.product_id == product_id)
        .all()
    )
    return sum((to_decimal(cost) for (cost,) in costs if cost is not None), ZERO)


def calculate_cost_breakdown(product: Product) -> CostBreakdown:
    material_cost = calculate_material_cost(product.id)
    labor_cost = calculate_labor_cost(product.minutes_to_make)
    procedure_cost = calculate_procedure_cost(product.id)
    total_cost = material_cost + labor_cost + procedure_cost
    return CostBreakdown(
        material_cost=material_cost,
        labor_cost=labor_cost,
        procedure_cost=procedure_cost,
        total_cost=total_cost,
        suggested_retail=quantize_money(total_cost * RETAIL_MARKUP_FACTOR),
        suggested_wholesale=quantize_money(total_cost * WHOLESALE_MARKUP_FACTOR),
    )


def compute_suggested_prices(product: Product) -> tuple[Decimal, Decimal]:
    """Return (suggested_retail, suggested_wholesale) for the product's current inputs."""
    breakdown = calculate_cost_breakdown(product)
    return breakdown.suggested_retail, breakdown.suggested_wholesale


def profit_margin_percentage(selling_price, total_cost: Decimal) -> Decimal | None:
    """(price - cost) / price x 100, two decimals; None when there is no usable price."""
    if selling_price is None:
        return None
    price = to_decimal(selling_price)
    if price <= 0:
        return None
    return quantize_money((price - total_cost) / price * HUNDRED)


def refresh_suggested_prices(product: Product, *, actor_user_id: int | None = None) -> bool:
    """
    Write freshly computed suggested prices onto the product.

    Returns True if either price changed. Does not commit.
    """
    # Pending join rows must be visible to the cost queries.
    db.session.flush()
    retail, wholesale = compute_suggested_prices(product)

    current_retail = product.suggested_retail_selling_price
    current_wholesale = product.suggested_wholesale_selling_price
    unchanged = (
        current_retail is not None
        and current_wholesale is not None
        and quantize_money(current_retail) == retail
        and quantize_money(current_wholesale) == wholesale
    )
    if unchanged:
        return False

    product.suggested_retail_selling_price = retail
    product.suggested_wholesale_selling_price = wholesale
    if actor_user_id is not None:
        product.updated_by_user_id = actor_user_id
    return True


def refresh_products_using_material(material_id: int, *, actor_user_id: int | None = None) -> int:
    """Re-derive suggested prices of every active product that uses the material. Returns # changed."""
    products = (
        db.session.query(Product)
        .join(ProductMaterial, ProductMaterial.product_id == Product.id)
        .filter(ProductMaterial.material_id == material_id, Product.is_active.is_(True))
        .order_by(Product.id.asc())
        .all()
    )
    changed = 0
    for product in products:
        if refresh_suggested_prices(product, actor_user_id=actor_user_id):
            changed += 1
    return changed


def recalculate_all_product_prices(actor_user_id: int) -> PriceRecalculationResult:
    """
    Re-derive suggested prices for every active product and commit.

    Each product runs inside its own savepoint: a product whose computation
    fails is rolled back to its previous prices, counted as failed, and the
    batch moves on.
    """
    actor = db.session.get(User, actor_user_id)
    result = PriceRecalculationResult(
        processed_at=utcnow(),
        processed_by_username=actor.username if actor else None,
    )

    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.id.asc())
        .all()
    )
    result.total_products = len(products)

    for product in products:
        code = product.code
        try:
            with db.session.begin_nested():
                changed = refresh_suggested_prices(product, actor_user_id=actor_user_id)
        except Exception:
            current_app.logger.exception("Price recalculation failed for product %s", code)
            result.failed_products += 1
            result.failed_product_codes.append(code)
            continue

        if changed:
            result.updated_products += 1
        else:
            result.skipped_products += 1

    db.session.commit()

    current_app.logger.info(
        "PRICE_RECALCULATION total=%s updated=%s skipped=%s failed=%s user=%s",
        result.total_products,
        result.updated_products,
        result.skipped_products,
        result.failed_products,
        result.processed_by_username,
    )
    return result
