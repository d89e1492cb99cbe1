# Overview: Service-layer operations for product stock; sale effects, manual updates and alerts.

"""
Stock ledger

Invariants:
- Product.stock is NULL for products that are not stock-tracked. Sale effects
  skip those products silently and record no movement.
- Stock may go negative. That is logged at WARNING level and surfaced through
  the NEGATIVE status; it never blocks a sale.
- RESTORE is the exact inverse of DEDUCT for the same lines.
- Every mutation logs one STOCK_MOVEMENT record at INFO level.
- Stock is read under SELECT ... FOR UPDATE and Product carries an optimistic
  version_id, so two writers cannot silently lose an update.

Nothing in this module commits; callers own the unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Literal

from flask import current_app

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError, parse_int
from .concurrency import lock_for_update


StockUpdateType = Literal["ADD", "REMOVE", "SET"]
SaleStockDirection = Literal["DEDUCT", "RESTORE"]
StockStatus = Literal["NORMAL", "LOW", "NEGATIVE", "NO_TRACKING"]
AlertSeverity = Literal["CRITICAL", "WARNING", "INFO"]

VALID_UPDATE_TYPES = {"ADD", "REMOVE", "SET"}
VALID_DIRECTIONS = {"DEDUCT", "RESTORE"}

_MANUAL_UPDATES: dict[str, Callable[[int, int], int]] = {
    "ADD": lambda previous, quantity: previous + quantity,
    "REMOVE": lambda previous, quantity: previous - quantity,
    "SET": lambda previous, quantity: quantity,
}

_SALE_EFFECTS: dict[str, Callable[[int, int], int]] = {
    "DEDUCT": lambda previous, quantity: previous - quantity,
    "RESTORE": lambda previous, quantity: previous + quantity,
}

# Movement operation recorded for each sale direction.
_SALE_OPERATIONS = {"DEDUCT": "REMOVE", "RESTORE": "ADD"}

_STATUS_SEVERITY = {
    "NEGATIVE": "CRITICAL",
    "LOW": "WARNING",
    "NORMAL": "INFO",
}


@dataclass(frozen=True)
class StockMovement:
    product_code: str
    operation: str
    reason: str
    previous_stock: int
    new_stock: int
    change_amount: int

    def log(self) -> None:
        current_app.logger.info(
            "STOCK_MOVEMENT product=%s op=%s reason=%s previous=%s new=%s change=%s",
            self.product_code,
            self.operation,
            self.reason,
            self.previous_stock,
            self.new_stock,
            self.change_amount,
        )


@dataclass(frozen=True)
class StockUpdateResult:
    product_id: int
    product_code: str
    update_type: str
    previous_stock: int
    new_stock: int
    change_amount: int
    status: str

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_code": self.product_code,
            "update_type": self.update_type,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "change_amount": self.change_amount,
            "status": self.status,
        }


def classify_stock_status(stock: int | None, low_stock_alert: int | None) -> StockStatus:
    if stock is None:
        return "NO_TRACKING"
    if stock < 0:
        return "NEGATIVE"
    if low_stock_alert is not None and stock <= low_stock_alert:
        return "LOW"
    return "NORMAL"


def alert_severity(status: str) -> AlertSeverity:
    return _STATUS_SEVERITY.get(status, "INFO")


def _locked_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
    return product


def apply_sale_effect(lines: Iterable, direction: SaleStockDirection) -> list[StockMovement]:
    """
    Apply a sale's stock effect for each (product_id, quantity) carried by `lines`.

    `lines` may be SaleLine rows or any objects with product_id and quantity.
    Returns the movements that were recorded.
    """
    if direction not in VALID_DIRECTIONS:
        raise ValidationError(f"Invalid stock direction '{direction}'")
    effect = _SALE_EFFECTS[direction]

    movements: list[StockMovement] = []
    for line in lines:
        product = _locked_product(line.product_id)
        if product.stock is None:
            continue

        previous = product.stock
        new = effect(previous, line.quantity)
        product.stock = new

        if direction == "DEDUCT" and new < 0:
            current_app.logger.warning(
                "Product %s stock is negative after sale: %s", product.code, new
            )

        movement = StockMovement(
            product_code=product.code,
            operation=_SALE_OPERATIONS[direction],
            reason="SALE",
            previous_stock=previous,
            new_stock=new,
            change_amount=new - previous,
        )
        movement.log()
        movements.append(movement)

    db.session.flush()
    return movements


def apply_manual_update(
    product_id: int,
    update_type: str,
    quantity,
    *,
    actor_user_id: int,
) -> StockUpdateResult:
    """
    ADD/REMOVE adjust relative to current stock; SET assigns.

    An untracked product (NULL stock) starts tracking from 0.
    """
    if update_type not in VALID_UPDATE_TYPES:
        raise ValidationError(
            f"Invalid update type '{update_type}'. Must be one of: {', '.join(sorted(VALID_UPDATE_TYPES))}"
        )
    qty = parse_int(quantity, "quantity", minimum=0)

    product = _locked_product(product_id)
    previous = product.stock if product.stock is not None else 0
    new = _MANUAL_UPDATES[update_type](previous, qty)

    product.stock = new
    product.updated_by_user_id = actor_user_id
    db.session.flush()

    StockMovement(
        product_code=product.code,
        operation=update_type,
        reason="MANUAL",
        previous_stock=previous,
        new_stock=new,
        change_amount=new - previous,
    ).log()

    return StockUpdateResult(
        product_id=product.id,
        product_code=product.code,
        update_type=update_type,
        previous_stock=previous,
        new_stock=new,
        change_amount=new - previous,
        status=classify_stock_status(new, product.low_stock_alert),
    )


def update_low_stock_alert(product_id: int, threshold, *, actor_user_id: int) -> Product:
    value = parse_int(threshold, "low_stock_alert", minimum=0)
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
    product.low_stock_alert = value
    product.updated_by_user_id = actor_user_id
    db.session.flush()
    return product


def list_stock_alerts(limit: int = 50) -> list[dict]:
    """Active, stock-tracked products that are LOW or NEGATIVE; most severe first."""
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock.isnot(None))
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )

    alerts = []
    for product in products:
        status = classify_stock_status(product.stock, product.low_stock_alert)
        if status not in ("LOW", "NEGATIVE"):
            continue
        alerts.append({
            "product_id": product.id,
            "product_code": product.code,
            "product_name": product.name,
            "stock": product.stock,
            "low_stock_alert": product.low_stock_alert,
            "status": status,
            "severity": alert_severity(status),
        })

    alerts.sort(key=lambda a: (0 if a["status"] == "NEGATIVE" else 1, a["stock"]))
    return alerts[:limit]
