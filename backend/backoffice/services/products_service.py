# backend/backoffice/services/products_service.py
"""
Products service

- Product create/update with material and procedure lines
- Every change to a cost input re-derives suggested prices (cost_service)
- Detail view: product + lines + cost breakdown + stock status
- Mispricing detector: stored suggested prices vs final selling prices
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Category, Material, Procedure, Product, ProductMaterial, ProductProcedure
from ..money import HUNDRED, ZERO, quantize_money, to_decimal
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    parse_decimal,
    parse_int,
    validate_material_quantity,
    validate_payload,
    validate_procedure_cost,
)
from .catalog_service import ensure_unique, require_entity
from .cost_service import calculate_cost_breakdown, profit_margin_percentage, refresh_suggested_prices
from .stock_service import classify_stock_status

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code",
        "name",
        "description",
        "category_id",
        "minutes_to_make",
        "stock",
        "low_stock_alert",
        "final_selling_price_retail",
        "final_selling_price_wholesale",
    },
    required_on_create={"code", "name", "category_id"},
)

# Stock moves only through stock_service so every change is logged as a movement.
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"stock", "low_stock_alert"},
)

# Inputs that change the cost model
COST_FIELDS = {"minutes_to_make"}


def list_products(
    page: int | None = None,
    per_page: int | None = None,
    include_inactive: bool = False,
) -> dict:
    """Product listing with optional pagination, ordered by name."""
    base_query = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc())
    if not include_inactive:
        base_query = base_query.filter(Product.is_active.is_(True))

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def _require_active_category(category_id: int) -> Category:
    category = require_entity(Category, category_id)
    if not category.is_active:
        raise ValidationError(f"Category {category_id} is inactive")
    return category


def _set_material_line(product: Product, material_id, quantity) -> ProductMaterial:
    qty = validate_material_quantity(quantity)
    material = require_entity(Material, parse_int(material_id, "material_id", minimum=1))

    line = (
        db.session.query(ProductMaterial)
        .filter_by(product_id=product.id, material_id=material.id)
        .first()
    )
    if line is None:
        line = ProductMaterial(product_id=product.id, material_id=material.id, quantity=qty)
        db.session.add(line)
    else:
        line.quantity = qty
    return line


def _set_procedure_line(product: Product, procedure_id, cost) -> ProductProcedure:
    amount = validate_procedure_cost(cost)
    procedure = require_entity(Procedure, parse_int(procedure_id, "procedure_id", minimum=1))

    line = (
        db.session.query(ProductProcedure)
        .filter_by(product_id=product.id, procedure_id=procedure.id)
        .first()
    )
    if line is None:
        line = ProductProcedure(product_id=product.id, procedure_id=procedure.id, cost=amount)
        db.session.add(line)
    else:
        line.cost = amount
    return line


def create_product(payload: dict, *, actor_user_id: int) -> Product:
    """
    Create a product (optionally with "materials" and "procedures" lines) and price it.

    materials:  [{"material_id": int, "quantity": decimal}]
    procedures: [{"procedure_id": int, "cost": decimal}]
    """
    payload = dict(payload or {})
    materials = payload.pop("materials", None) or []
    procedures = payload.pop("procedures", None) or []

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    ensure_unique(Product, "code", patch["code"])
    ensure_unique(Product, "name", patch["name"])
    _require_active_category(patch["category_id"])

    product = Product(**patch)
    product.created_by_user_id = actor_user_id
    product.updated_by_user_id = actor_user_id
    db.session.add(product)
    db.session.flush()

    try:
        for item in materials:
            _set_material_line(product, item.get("material_id"), item.get("quantity"))
        for item in procedures:
            _set_procedure_line(product, item.get("procedure_id"), item.get("cost"))

        refresh_suggested_prices(product, actor_user_id=actor_user_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return product


def update_product(product_id: int, payload: dict, *, actor_user_id: int) -> Product:
    product = require_entity(Product, product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    if "code" in patch:
        ensure_unique(Product, "code", patch["code"], exclude_id=product.id)
    if "name" in patch:
        ensure_unique(Product, "name", patch["name"], exclude_id=product.id)
    if "category_id" in patch:
        _require_active_category(patch["category_id"])

    cost_changed = any(
        k in COST_FIELDS and getattr(product, k) != v for k, v in patch.items()
    )

    for k, v in patch.items():
        setattr(product, k, v)
    product.updated_by_user_id = actor_user_id

    if cost_changed:
        refresh_suggested_prices(product, actor_user_id=actor_user_id)

    db.session.commit()
    return product


def add_material_line(product_id: int, material_id, quantity, *, actor_user_id: int) -> Product:
    """Add (or replace) a material line and re-derive suggested prices."""
    product = require_entity(Product, product_id)
    _set_material_line(product, material_id, quantity)
    refresh_suggested_prices(product, actor_user_id=actor_user_id)
    product.updated_by_user_id = actor_user_id
    db.session.commit()
    return product


def remove_material_line(product_id: int, material_id: int, *, actor_user_id: int) -> Product:
    product = require_entity(Product, product_id)
    line = (
        db.session.query(ProductMaterial)
        .filter_by(product_id=product.id, material_id=material_id)
        .first()
    )
    if line is None:
        raise NotFoundError(
            f"Material {material_id} is not used by product {product.code}",
            {"product_id": product_id, "material_id": material_id},
        )
    db.session.delete(line)
    refresh_suggested_prices(product, actor_user_id=actor_user_id)
    product.updated_by_user_id = actor_user_id
    db.session.commit()
    return product


def add_procedure_line(product_id: int, procedure_id, cost, *, actor_user_id: int) -> Product:
    """Add (or replace) a procedure line and re-derive suggested prices."""
    product = require_entity(Product, product_id)
    _set_procedure_line(product, procedure_id, cost)
    refresh_suggested_prices(product, actor_user_id=actor_user_id)
    product.updated_by_user_id = actor_user_id
    db.session.commit()
    return product


def remove_procedure_line(product_id: int, procedure_id: int, *, actor_user_id: int) -> Product:
    product = require_entity(Product, product_id)
    line = (
        db.session.query(ProductProcedure)
        .filter_by(product_id=product.id, procedure_id=procedure_id)
        .first()
    )
    if line is None:
        raise NotFoundError(
            f"Procedure {procedure_id} is not used by product {product.code}",
            {"product_id": product_id, "procedure_id": procedure_id},
        )
    db.session.delete(line)
    refresh_suggested_prices(product, actor_user_id=actor_user_id)
    product.updated_by_user_id = actor_user_id
    db.session.commit()
    return product


def get_product_detail(product_id: int) -> dict:
    product = require_entity(Product, product_id)
    breakdown = calculate_cost_breakdown(product)

    material_rows = (
        db.session.query(ProductMaterial, Material)
        .join(Material, Material.id == ProductMaterial.material_id)
        .filter(ProductMaterial.product_id == product.id)
        .order_by(ProductMaterial.id.asc())
        .all()
    )
    procedure_rows = (
        db.session.query(ProductProcedure, Procedure)
        .join(Procedure, Procedure.id == ProductProcedure.procedure_id)
        .filter(ProductProcedure.product_id == product.id)
        .order_by(ProductProcedure.id.asc())
        .all()
    )

    materials = []
    for line, material in material_rows:
        unit_cost = to_decimal(material.current_unit_cost)
        materials.append({
            **line.to_dict(),
            "material_name": material.name,
            "unit_cost": str(quantize_money(unit_cost)),
            "line_cost": str(quantize_money(unit_cost * to_decimal(line.quantity))),
        })

    procedures = [
        {**line.to_dict(), "procedure_name": procedure.name}
        for line, procedure in procedure_rows
    ]

    return {
        **product.to_dict(),
        "materials": materials,
        "procedures": procedures,
        "cost_breakdown": breakdown.to_dict(),
        "profit_margin_retail": _str_or_none(
            profit_margin_percentage(product.final_selling_price_retail, breakdown.total_cost)
        ),
        "profit_margin_wholesale": _str_or_none(
            profit_margin_percentage(product.final_selling_price_wholesale, breakdown.total_cost)
        ),
        "stock_status": classify_stock_status(product.stock, product.low_stock_alert),
    }


def _str_or_none(value):
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
# Mispricing detector
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MispricedProduct:
    product_id: int
    code: str
    name: str
    category_id: int
    suggested_retail: Decimal
    final_retail: Decimal
    retail_difference: Decimal
    suggested_wholesale: Decimal
    final_wholesale: Decimal
    wholesale_difference: Decimal
    issue_type: str

    @property
    def max_abs_difference(self) -> Decimal:
        return max(abs(self.retail_difference), abs(self.wholesale_difference))

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "code": self.code,
            "name": self.name,
            "category_id": self.category_id,
            "suggested_retail_selling_price": str(self.suggested_retail),
            "final_selling_price_retail": str(self.final_retail),
            "retail_difference_percentage": str(self.retail_difference),
            "suggested_wholesale_selling_price": str(self.suggested_wholesale),
            "final_selling_price_wholesale": str(self.final_wholesale),
            "wholesale_difference_percentage": str(self.wholesale_difference),
            "issue_type": self.issue_type,
        }


def price_difference_percentage(suggested, final) -> Decimal:
    """(suggested - final) / final x 100, two decimals. Positive means underpriced."""
    final_dec = to_decimal(final)
    if final_dec == ZERO:
        raise ValidationError("Final price must be non-zero")
    return quantize_money((to_decimal(suggested) - final_dec) / final_dec * HUNDRED)


def determine_pricing_issue_type(retail_difference, wholesale_difference, threshold) -> str:
    """
    Only the underpriced direction (positive difference) names an issue.

    A product flagged for being overpriced still reports NO_ISSUES.
    """
    retail_under = retail_difference >= threshold
    wholesale_under = wholesale_difference >= threshold
    if retail_under and wholesale_under:
        return "BOTH_UNDERPRICED"
    if retail_under:
        return "RETAIL_UNDERPRICED"
    if wholesale_under:
        return "WHOLESALE_UNDERPRICED"
    return "NO_ISSUES"


def _is_candidate(suggested, final) -> bool:
    return suggested is not None and final is not None and to_decimal(final) != ZERO


def find_mispriced_products(threshold=None, limit: int = 50) -> list[dict]:
    """
    Active products whose retail or wholesale price is off its suggestion by >= threshold percent.

    Products lacking a suggested price or a non-zero final price on either
    channel are not candidates. Sorted by the largest absolute difference.
    """
    if threshold is None:
        threshold = current_app.config.get("MISPRICING_THRESHOLD_PERCENT", "20")
    threshold = parse_decimal(threshold, "threshold", integer_digits=5, minimum=ZERO)
    limit = parse_int(limit, "limit", minimum=1)

    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.id.asc())
        .all()
    )

    flagged: list[MispricedProduct] = []
    for p in products:
        if not _is_candidate(p.suggested_retail_selling_price, p.final_selling_price_retail):
            continue
        if not _is_candidate(p.suggested_wholesale_selling_price, p.final_selling_price_wholesale):
            continue

        retail_diff = price_difference_percentage(p.suggested_retail_selling_price, p.final_selling_price_retail)
        wholesale_diff = price_difference_percentage(
            p.suggested_wholesale_selling_price, p.final_selling_price_wholesale
        )
        if abs(retail_diff) < threshold and abs(wholesale_diff) < threshold:
            continue

        flagged.append(MispricedProduct(
            product_id=p.id,
            code=p.code,
            name=p.name,
            category_id=p.category_id,
            suggested_retail=quantize_money(p.suggested_retail_selling_price),
            final_retail=quantize_money(p.final_selling_price_retail),
            retail_difference=retail_diff,
            suggested_wholesale=quantize_money(p.suggested_wholesale_selling_price),
            final_wholesale=quantize_money(p.final_selling_price_wholesale),
            wholesale_difference=wholesale_diff,
            issue_type=determine_pricing_issue_type(retail_diff, wholesale_diff, threshold),
        ))

    flagged.sort(key=lambda m: m.max_abs_difference, reverse=True)
    return [m.to_dict() for m in flagged[:limit]]
