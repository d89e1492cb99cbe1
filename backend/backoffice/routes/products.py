# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product routes.

Reads are open; writes require an acting user (X-User-Id, see require_user).
Every write that touches a cost input re-derives the product's suggested prices.
"""
from flask import Blueprint, request, g, jsonify

from ..services import cost_service, lifecycle_service, products_service
from ..validation import ServiceError
from ..decorators import require_user
from . import internal_error_response, service_error_response

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    - include_inactive: "1" to include soft-deleted products
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    include_inactive = request.args.get("include_inactive") in ("1", "true")

    return products_service.list_products(page=page, per_page=per_page, include_inactive=include_inactive)


@products_bp.post("")
@require_user
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(payload, actor_user_id=g.current_user.id)
        return jsonify(product.to_dict()), 201
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to create product")


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    """Product detail: lines, cost breakdown, profit margins and stock status."""
    try:
        return jsonify(products_service.get_product_detail(product_id)), 200
    except ServiceError as e:
        return service_error_response(e)


@products_bp.put("/<int:product_id>")
@require_user
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, payload, actor_user_id=g.current_user.id)
        return jsonify(product.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to update product")


@products_bp.delete("/<int:product_id>")
@require_user
def delete_product_route(product_id: int):
    """Soft delete if the product was ever sold, hard delete otherwise."""
    try:
        outcome = lifecycle_service.delete_entity("product", product_id, actor_user_id=g.current_user.id)
        return jsonify({"ok": True, "result": outcome}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to delete product")


@products_bp.post("/<int:product_id>/materials")
@require_user
def add_material_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.add_material_line(
            product_id,
            data.get("material_id"),
            data.get("quantity"),
            actor_user_id=g.current_user.id,
        )
        return jsonify(product.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to add material to product")


@products_bp.delete("/<int:product_id>/materials/<int:material_id>")
@require_user
def remove_material_route(product_id: int, material_id: int):
    try:
        product = products_service.remove_material_line(product_id, material_id, actor_user_id=g.current_user.id)
        return jsonify(product.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to remove material from product")


@products_bp.post("/<int:product_id>/procedures")
@require_user
def add_procedure_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.add_procedure_line(
            product_id,
            data.get("procedure_id"),
            data.get("cost"),
            actor_user_id=g.current_user.id,
        )
        return jsonify(product.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to add procedure to product")


@products_bp.delete("/<int:product_id>/procedures/<int:procedure_id>")
@require_user
def remove_procedure_route(product_id: int, procedure_id: int):
    try:
        product = products_service.remove_procedure_line(product_id, procedure_id, actor_user_id=g.current_user.id)
        return jsonify(product.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to remove procedure from product")


@products_bp.post("/recalculate-prices")
@require_user
def recalculate_prices_route():
    """Re-derive suggested prices for every active product."""
    try:
        result = cost_service.recalculate_all_product_prices(g.current_user.id)
        return jsonify(result.to_dict()), 200
    except Exception:
        return internal_error_response("Bulk price recalculation failed")


@products_bp.get("/mispriced")
def mispriced_products_route():
    """
    Query params:
    - threshold: percent (optional, defaults to MISPRICING_THRESHOLD_PERCENT)
    - limit: int (optional, default 50)
    """
    try:
        items = products_service.find_mispriced_products(
            threshold=request.args.get("threshold"),
            limit=request.args.get("limit", "50"),
        )
        return jsonify({"items": items, "count": len(items)}), 200
    except ServiceError as e:
        return service_error_response(e)
