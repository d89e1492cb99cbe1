# Overview: Flask API routes for reference data; create, delete (soft or hard) and restore.

# backend/backoffice/routes/catalog.py
"""
Reference data routes: categories, locations, customers, materials,
procedures and suppliers.

DELETE applies the lifecycle policy: rows that something still refers to are
soft-deleted (and can be restored), unreferenced rows are removed.
"""

from flask import Blueprint, request, jsonify, g

from ..services import catalog_service, lifecycle_service
from ..validation import ServiceError
from ..decorators import require_user
from . import internal_error_response, service_error_response


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")

# URL collection -> (lifecycle kind, create function)
COLLECTIONS = {
    "categories": ("category", catalog_service.create_category),
    "locations": ("location", catalog_service.create_location),
    "customers": ("customer", catalog_service.create_customer),
    "materials": ("material", catalog_service.create_material),
    "procedures": ("procedure", catalog_service.create_procedure),
    "suppliers": ("supplier", catalog_service.create_supplier),
}

COLLECTION_RULE = "<any(categories, locations, customers, materials, procedures, suppliers):collection>"


@catalog_bp.post(f"/{COLLECTION_RULE}")
@require_user
def create_entity_route(collection: str):
    _, create = COLLECTIONS[collection]
    payload = request.get_json(silent=True) or {}
    try:
        entity = create(payload, actor_user_id=g.current_user.id)
        return jsonify(entity.to_dict()), 201
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response(f"Failed to create entry in {collection}")


@catalog_bp.delete(f"/{COLLECTION_RULE}/<int:entity_id>")
@require_user
def delete_entity_route(collection: str, entity_id: int):
    kind, _ = COLLECTIONS[collection]
    try:
        outcome = lifecycle_service.delete_entity(kind, entity_id, actor_user_id=g.current_user.id)
        return jsonify({"ok": True, "result": outcome}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response(f"Failed to delete {kind} {entity_id}")


@catalog_bp.post(f"/{COLLECTION_RULE}/<int:entity_id>/restore")
@require_user
def restore_entity_route(collection: str, entity_id: int):
    kind, _ = COLLECTIONS[collection]
    try:
        entity = lifecycle_service.restore_entity(kind, entity_id, actor_user_id=g.current_user.id)
        return jsonify(entity.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response(f"Failed to restore {kind} {entity_id}")


@catalog_bp.put("/materials/<int:material_id>/cost")
@require_user
def update_material_cost_route(material_id: int):
    """
    Body: {"current_unit_cost": "12.50"}

    Every active product using the material is re-priced in the same commit.
    """
    data = request.get_json(silent=True) or {}
    try:
        material, repriced = catalog_service.update_material_cost(
            material_id,
            data.get("current_unit_cost"),
            actor_user_id=g.current_user.id,
        )
        return jsonify({"material": material.to_dict(), "products_repriced": repriced}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to update material cost")
