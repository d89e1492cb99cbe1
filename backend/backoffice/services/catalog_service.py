# Overview: Service-layer operations for reference data (categories, locations, customers, materials, procedures, suppliers).

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Category, Customer, Location, Material, Procedure, Supplier
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    parse_decimal,
    validate_payload,
)
from .cost_service import refresh_products_using_material


CATEGORY_POLICY = ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"})
LOCATION_POLICY = ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"})
PROCEDURE_POLICY = ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"})
MATERIAL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "current_unit_cost", "unit_of_measure"},
    required_on_create={"name"},
)
CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "phone", "tin"},
    required_on_create={"first_name", "last_name"},
)
SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "tin", "email", "phone"},
    required_on_create={"name"},
)


def require_entity(model, entity_id: int, *, label: str | None = None):
    """Fetch a row by primary key or raise NotFoundError."""
    entity = db.session.get(model, entity_id)
    if entity is None:
        name = label or model.__name__
        raise NotFoundError(f"{name} {entity_id} not found", {"id": entity_id})
    return entity


def ensure_unique(model, field: str, value, *, exclude_id: int | None = None) -> None:
    """Raise ConflictError if another row already holds `value` in `field`."""
    if value is None:
        return
    query = db.session.query(model.id).filter(getattr(model, field) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(
            f"{model.__name__} with {field} '{value}' already exists",
            {"field": field, "value": str(value)},
        )


def _create(model, policy: ModelValidationPolicy, payload: dict, unique_fields: tuple[str, ...], actor_user_id: int):
    patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
    for field in unique_fields:
        ensure_unique(model, field, patch.get(field))

    entity = model(**patch)
    entity.created_by_user_id = actor_user_id
    entity.updated_by_user_id = actor_user_id
    db.session.add(entity)
    db.session.commit()
    return entity


def create_category(payload: dict, *, actor_user_id: int) -> Category:
    return _create(Category, CATEGORY_POLICY, payload, ("name",), actor_user_id)


def create_location(payload: dict, *, actor_user_id: int) -> Location:
    return _create(Location, LOCATION_POLICY, payload, ("name",), actor_user_id)


def create_procedure(payload: dict, *, actor_user_id: int) -> Procedure:
    return _create(Procedure, PROCEDURE_POLICY, payload, ("name",), actor_user_id)


def create_material(payload: dict, *, actor_user_id: int) -> Material:
    if payload and payload.get("current_unit_cost") is not None:
        parse_decimal(
            payload["current_unit_cost"], "current_unit_cost",
            integer_digits=8, minimum=Decimal("0"),
        )
    return _create(Material, MATERIAL_POLICY, payload, ("name",), actor_user_id)


def create_customer(payload: dict, *, actor_user_id: int) -> Customer:
    return _create(Customer, CUSTOMER_POLICY, payload, ("email", "tin"), actor_user_id)


def create_supplier(payload: dict, *, actor_user_id: int) -> Supplier:
    return _create(Supplier, SUPPLIER_POLICY, payload, ("tin",), actor_user_id)


def update_material_cost(material_id: int, unit_cost, *, actor_user_id: int) -> tuple[Material, int]:
    """
    Change a material's unit cost and re-derive every dependent product's suggested prices.

    Returns (material, number_of_products_repriced).
    """
    cost = parse_decimal(unit_cost, "current_unit_cost", integer_digits=8, minimum=Decimal("0"))
    material = require_entity(Material, material_id)

    material.current_unit_cost = cost
    material.updated_by_user_id = actor_user_id
    db.session.flush()

    changed = refresh_products_using_material(material.id, actor_user_id=actor_user_id)
    db.session.commit()
    return material, changed
