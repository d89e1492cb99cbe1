# Overview: Flask API routes for product stock; manual updates, alert thresholds and alerts.

from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..services import stock_service
from ..services.concurrency import run_with_retry
from ..validation import ServiceError
from ..decorators import require_user
from . import internal_error_response, service_error_response


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/<int:product_id>")
@require_user
def update_stock_route(product_id: int):
    """
    Manual stock update.

    Body: {"update_type": "ADD" | "REMOVE" | "SET", "quantity": int}
    """
    data = request.get_json(silent=True) or {}
    try:
        def _op():
            result = stock_service.apply_manual_update(
                product_id,
                data.get("update_type"),
                data.get("quantity"),
                actor_user_id=g.current_user.id,
            )
            db.session.commit()
            return result

        result = run_with_retry(_op)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to update stock")


@stock_bp.put("/<int:product_id>/alert")
@require_user
def update_alert_route(product_id: int):
    """Body: {"low_stock_alert": int}"""
    data = request.get_json(silent=True) or {}
    try:
        product = stock_service.update_low_stock_alert(
            product_id,
            data.get("low_stock_alert"),
            actor_user_id=g.current_user.id,
        )
        db.session.commit()
        return jsonify({
            "product_id": product.id,
            "stock": product.stock,
            "low_stock_alert": product.low_stock_alert,
            "status": stock_service.classify_stock_status(product.stock, product.low_stock_alert),
        }), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        return internal_error_response("Failed to update low stock alert")


@stock_bp.get("/alerts")
def stock_alerts_route():
    limit = request.args.get("limit", 50, type=int)
    items = stock_service.list_stock_alerts(limit=max(limit, 1))
    return jsonify({"items": items, "count": len(items)}), 200
