# Overview: Service-layer operations for entity lifecycle; soft vs hard delete and restore.

"""
Entity lifecycle policy

================================================================================
PURPOSE: Never orphan history. Delete what nothing refers to, retire the rest.
================================================================================

RULE:
    >= 1 dependent row  -> SOFT delete (is_active=False, deleted_at=now, row kept)
    no dependents       -> HARD delete (row removed, owned join rows first)

DEPENDENTS (counted over all rows, active or not):
    category   <- products
    location   <- sales
    customer   <- sales
    material   <- product material lines, purchase lines
    procedure  <- product procedure lines
    supplier   <- purchases
    product    <- sale lines

Soft-deleted rows can be restored. Sales and purchases are not covered here;
their own services always hard-delete them.
================================================================================
"""

from __future__ import annotations

from typing import Callable, Literal

from ..extensions import db
from ..models import (
    Category,
    Customer,
    Location,
    Material,
    Procedure,
    Product,
    ProductMaterial,
    ProductProcedure,
    Purchase,
    PurchaseLine,
    Sale,
    SaleLine,
    Supplier,
)
from ..time_utils import utcnow
from ..validation import ValidationError
from .catalog_service import require_entity


EntityKind = Literal["category", "customer", "location", "material", "procedure", "product", "supplier"]
DeleteOutcome = Literal["SOFT_DELETED", "HARD_DELETED"]

ENTITY_MODELS = {
    "category": Category,
    "customer": Customer,
    "location": Location,
    "material": Material,
    "procedure": Procedure,
    "product": Product,
    "supplier": Supplier,
}


def _count(column, entity_id: int) -> int:
    return db.session.query(db.func.count(column)).filter(column == entity_id).scalar() or 0


_DEPENDENT_COUNTERS: dict[str, Callable[[int], int]] = {
    "category": lambda eid: _count(Product.category_id, eid),
    "location": lambda eid: _count(Sale.location_id, eid),
    "customer": lambda eid: _count(Sale.customer_id, eid),
    "material": lambda eid: _count(ProductMaterial.material_id, eid) + _count(PurchaseLine.material_id, eid),
    "procedure": lambda eid: _count(ProductProcedure.procedure_id, eid),
    "supplier": lambda eid: _count(Purchase.supplier_id, eid),
    "product": lambda eid: _count(SaleLine.product_id, eid),
}


def _model_for(kind: str):
    model = ENTITY_MODELS.get(kind)
    if model is None:
        raise ValidationError(
            f"Invalid entity kind '{kind}'. Must be one of: {', '.join(sorted(ENTITY_MODELS))}"
        )
    return model


def count_dependents(kind: str, entity_id: int) -> int:
    _model_for(kind)
    return _DEPENDENT_COUNTERS[kind](entity_id)


def _clear_owned_rows(kind: str, entity_id: int) -> None:
    if kind == "product":
        db.session.query(ProductMaterial).filter(ProductMaterial.product_id == entity_id).delete(
            synchronize_session=False
        )
        db.session.query(ProductProcedure).filter(ProductProcedure.product_id == entity_id).delete(
            synchronize_session=False
        )


def delete_entity(kind: str, entity_id: int, *, actor_user_id: int) -> DeleteOutcome:
    """
    Soft-delete the entity when anything refers to it, hard-delete it otherwise.

    Raises NotFoundError for an unknown id. Commits.
    """
    model = _model_for(kind)
    entity = require_entity(model, entity_id)

    if count_dependents(kind, entity_id) > 0:
        entity.is_active = False
        entity.deleted_at = utcnow()
        entity.updated_by_user_id = actor_user_id
        db.session.commit()
        return "SOFT_DELETED"

    _clear_owned_rows(kind, entity_id)
    db.session.delete(entity)
    db.session.commit()
    return "HARD_DELETED"


def restore_entity(kind: str, entity_id: int, *, actor_user_id: int):
    """Reactivate a soft-deleted row. Restoring an active row is an invalid argument."""
    model = _model_for(kind)
    entity = require_entity(model, entity_id)

    if entity.is_active:
        raise ValidationError(f"{model.__name__} {entity_id} is not deleted")

    entity.is_active = True
    entity.deleted_at = None
    entity.updated_by_user_id = actor_user_id
    db.session.commit()
    return entity
