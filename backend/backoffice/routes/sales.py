# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/backoffice/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..validation import ServiceError
from ..decorators import require_user
from . import internal_error_response, service_error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_user
def record_sale_route():
    """
    Record a sale: prices it, deducts stock and stamps the customer's first sale date.

    Body:
    {
      "location_id": 1,
      "customer_id": 3,              (optional)
      "sale_date": "2024-05-01",     (optional, defaults to today)
      "is_wholesale": false,
      "items": [{"product_id": 7, "quantity": 2}],
      "packaging_price": "5.00",
      "final_price": "75.00",        (or "discount_percentage")
      "payment_method": "CASH"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.record_sale(data, actor_user_id=g.current_user.id)
        return jsonify({"sale": sale.to_dict()}), 201
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to record sale")


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except ServiceError as e:
        return service_error_response(e)


@sales_bp.put("/<int:sale_id>")
@require_user
def update_sale_route(sale_id: int):
    """Update header fields and re-price. Lines and stock are untouched."""
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.update_sale(sale_id, data, actor_user_id=g.current_user.id)
        return jsonify({"sale": sale.to_dict()}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to update sale")


@sales_bp.delete("/<int:sale_id>")
@require_user
def delete_sale_route(sale_id: int):
    """Restore stock for every line, then delete the sale."""
    try:
        sales_service.delete_sale(sale_id, actor_user_id=g.current_user.id)
        return jsonify({"ok": True}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to delete sale")


@sales_bp.post("/calculate-pricing")
def calculate_pricing_route():
    """Price preview for the record-sale page. Nothing is persisted."""
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(sales_service.calculate_cart_pricing(data)), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to calculate cart pricing")


@sales_bp.get("/payment-methods")
def payment_methods_route():
    return jsonify({"items": sales_service.list_payment_methods()}), 200
