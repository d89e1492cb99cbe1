# Overview: Shared response helpers for the API blueprints.

from flask import current_app, jsonify

from ..extensions import db
from ..validation import ServiceError


def service_error_response(exc: ServiceError):
    """Map a service error kind to its HTTP response; the unit of work is discarded."""
    db.session.rollback()
    body, status = exc.to_response()
    return jsonify(body), status


def internal_error_response(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
