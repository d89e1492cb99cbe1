"""
Input parsing and account tests.
"""

from decimal import Decimal

import bcrypt
import pytest

from backoffice.services.auth_service import (
    PasswordValidationError,
    create_user,
    hash_password,
    validate_password_strength,
)
from backoffice.validation import (
    ConflictError,
    ValidationError,
    parse_decimal,
    parse_int,
    validate_material_quantity,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12.50", Decimal("12.50")),
        (3, Decimal("3")),
        (0.1, Decimal("0.1")),
        ("9999.99", Decimal("9999.99")),
    ],
)
def test_parse_decimal_accepts(value, expected):
    assert parse_decimal(value, "amount", integer_digits=4) == expected


@pytest.mark.parametrize("value", [True, None, "", "abc", "NaN", "Infinity", "1.234", "10000"])
def test_parse_decimal_rejects(value):
    with pytest.raises(ValidationError):
        parse_decimal(value, "amount", integer_digits=4)


def test_parse_decimal_bounds():
    with pytest.raises(ValidationError):
        parse_decimal("0", "quantity", integer_digits=4, minimum=Decimal("0"), exclusive_minimum=True)
    with pytest.raises(ValidationError):
        parse_decimal("101", "pct", integer_digits=3, maximum=Decimal("100"))
    assert parse_decimal("-5", "pct", integer_digits=3, minimum=Decimal("-999.99")) == Decimal("-5")


def test_parse_int():
    assert parse_int("42", "quantity") == 42
    for bad in ("4.0", "1e3", 2.5, False, None):
        with pytest.raises(ValidationError):
            parse_int(bad, "quantity")
    with pytest.raises(ValidationError):
        parse_int(0, "quantity", minimum=1)


def test_material_quantity_limits():
    assert validate_material_quantity("9999.99") == Decimal("9999.99")
    with pytest.raises(ValidationError):
        validate_material_quantity("10000")
    with pytest.raises(ValidationError):
        validate_material_quantity("0")


def test_password_strength():
    validate_password_strength("Password123!")
    for weak in ("Sh0rt!", "password123!", "PASSWORD123!", "Password!!!", "Password123"):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(weak)


def test_hash_password(app):
    hashed = hash_password("Password123!")

    assert hashed.startswith("$2")
    assert bcrypt.checkpw(b"Password123!", hashed.encode("utf-8"))
    with pytest.raises(PasswordValidationError):
        hash_password("weak")


def test_create_user_rejects_duplicates(db_session, user):
    with pytest.raises(ConflictError):
        create_user("owner", "someone@workshop.local", "Password123!")
    with pytest.raises(ValidationError):
        create_user("", "x@workshop.local", "Password123!")
