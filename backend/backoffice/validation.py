from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_date, parse_iso_datetime


class ServiceError(Exception):
    """
    Base class for expected, business-level failures.

    `kind` is the error taxonomy the route layer maps to an HTTP status:
    NOT_FOUND, ALREADY_EXISTS, INVALID_ARGUMENT.
    """
    kind = "INVALID_ARGUMENT"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_response(self) -> tuple[dict, int]:
        body = {"error": str(self), "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body, self.status_code


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    kind = "INVALID_ARGUMENT"
    status_code = 400


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""
    kind = "ALREADY_EXISTS"
    status_code = 409


class NotFoundError(ServiceError, LookupError):
    """404-level missing reference."""
    kind = "NOT_FOUND"
    status_code = 404


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(
    value: Any,
    field: str,
    *,
    integer_digits: int,
    decimal_places: int = 2,
    minimum: Decimal | None = None,
    maximum: Decimal | None = None,
    exclusive_minimum: bool = False,
) -> Decimal:
    """
    Strict decimal parsing for money, quantities and percentages.

    Accepts int, Decimal, float (via its shortest repr) and numeric strings.
    Rejects booleans, NaN/Infinity, more than `decimal_places` fractional digits
    and more than `integer_digits` digits before the point.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        dec = Decimal(repr(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            dec = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    sign, digits, exponent = dec.normalize().as_tuple() if dec != 0 else (0, (0,), 0)
    fractional = -exponent if exponent < 0 else 0
    if fractional > decimal_places:
        raise ValidationError(f"{field} can have at most {decimal_places} decimal places")

    whole_digits = len(digits) - fractional if exponent <= 0 else len(digits) + exponent
    if whole_digits > integer_digits:
        raise ValidationError(f"{field} can have at most {integer_digits} digits before the decimal point")

    if minimum is not None:
        if exclusive_minimum and dec <= minimum:
            raise ValidationError(f"{field} must be greater than {minimum}")
        if not exclusive_minimum and dec < minimum:
            raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and dec > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")

    return dec


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Strict integer parsing: rejects floats, booleans and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_date(value: Any, field: str) -> date:
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")
    if parsed is None:
        raise ValidationError(f"{field} is required")
    return parsed


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Numeric):
        precision = coltype.precision or 10
        scale = coltype.scale or 0
        return parse_decimal(
            value,
            col.key,
            integer_digits=precision - scale,
            decimal_places=scale,
        )

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return parse_date(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Numeric precision)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def validate_material_quantity(value: Any) -> Decimal:
    """Material quantity on a product: > 0, at most 4+2 digits."""
    if value is None:
        raise ValidationError("Material quantity is required")
    return parse_decimal(
        value, "quantity", integer_digits=4, decimal_places=2,
        minimum=Decimal("0"), exclusive_minimum=True,
    )


def validate_procedure_cost(value: Any) -> Decimal:
    """Procedure cost on a product: > 0, at most 6+2 digits."""
    if value is None:
        raise ValidationError("Procedure cost is required")
    return parse_decimal(
        value, "cost", integer_digits=6, decimal_places=2,
        minimum=Decimal("0"), exclusive_minimum=True,
    )


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("final_selling_price_retail", "final_selling_price_wholesale"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    if patch.get("minutes_to_make") is not None and patch["minutes_to_make"] < 0:
        raise ValidationError("minutes_to_make must be >= 0")

    if patch.get("low_stock_alert") is not None and patch["low_stock_alert"] < 0:
        raise ValidationError("low_stock_alert must be >= 0")
