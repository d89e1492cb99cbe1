# Overview: Flask API routes for material purchases.

from flask import Blueprint, request, jsonify, g

from ..services import purchase_service
from ..validation import ServiceError
from ..decorators import require_user
from . import internal_error_response, service_error_response


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_user
def record_purchase_route():
    """
    Body:
    {
      "supplier_id": 1,
      "purchase_date": "2024-05-01",
      "lines": [{"material_id": 2, "quantity": "10", "unit_price": "1.20"}]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        purchase = purchase_service.record_purchase(data, actor_user_id=g.current_user.id)
        return jsonify(purchase.to_dict()), 201
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to record purchase")


@purchases_bp.delete("/<int:purchase_id>")
@require_user
def delete_purchase_route(purchase_id: int):
    try:
        purchase_service.delete_purchase(purchase_id)
        return jsonify({"ok": True}), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to delete purchase")
