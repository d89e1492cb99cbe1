"""
Stock ledger tests: sale effects, manual updates, classification, alerts.
"""

import logging
from types import SimpleNamespace

import pytest

from backoffice.services import stock_service
from backoffice.validation import NotFoundError, ValidationError


def _line(product, quantity):
    return SimpleNamespace(product_id=product.id, quantity=quantity)


@pytest.mark.parametrize(
    "stock, alert, expected",
    [
        (None, 3, "NO_TRACKING"),
        (-1, 3, "NEGATIVE"),
        (0, None, "NORMAL"),
        (3, 3, "LOW"),
        (2, 3, "LOW"),
        (4, 3, "NORMAL"),
    ],
)
def test_classify_stock_status(stock, alert, expected):
    assert stock_service.classify_stock_status(stock, alert) == expected


def test_alert_severity():
    assert stock_service.alert_severity("NEGATIVE") == "CRITICAL"
    assert stock_service.alert_severity("LOW") == "WARNING"
    assert stock_service.alert_severity("NORMAL") == "INFO"


def test_deduct_then_restore_is_identity(db_session, make_product):
    product = make_product(stock=10)

    stock_service.apply_sale_effect([_line(product, 4)], "DEDUCT")
    assert product.stock == 6

    stock_service.apply_sale_effect([_line(product, 4)], "RESTORE")
    assert product.stock == 10


def test_deduct_may_go_negative_with_warning(db_session, make_product, caplog):
    product = make_product(stock=10, low_stock_alert=3)

    stock_service.apply_sale_effect([_line(product, 8)], "DEDUCT")
    assert product.stock == 2
    assert stock_service.classify_stock_status(product.stock, product.low_stock_alert) == "LOW"

    with caplog.at_level(logging.WARNING):
        stock_service.apply_sale_effect([_line(product, 3)], "DEDUCT")

    assert product.stock == -1
    assert stock_service.classify_stock_status(product.stock, product.low_stock_alert) == "NEGATIVE"
    assert any(
        r.levelno == logging.WARNING and "negative" in r.getMessage() for r in caplog.records
    )


def test_restore_into_negative_stock_does_not_warn(db_session, make_product, caplog):
    product = make_product(stock=-5)

    with caplog.at_level(logging.WARNING):
        stock_service.apply_sale_effect([_line(product, 2)], "RESTORE")

    assert product.stock == -3
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_untracked_products_are_skipped(db_session, make_product):
    product = make_product(stock=None)

    movements = stock_service.apply_sale_effect([_line(product, 5)], "DEDUCT")

    assert movements == []
    assert product.stock is None


def test_every_mutation_logs_a_movement(db_session, make_product, caplog):
    product = make_product(code="RING-1", stock=5)

    with caplog.at_level(logging.INFO):
        movements = stock_service.apply_sale_effect([_line(product, 2)], "DEDUCT")

    assert len(movements) == 1
    movement = movements[0]
    assert (movement.operation, movement.reason) == ("REMOVE", "SALE")
    assert (movement.previous_stock, movement.new_stock, movement.change_amount) == (5, 3, -2)
    assert any("STOCK_MOVEMENT" in r.getMessage() and "RING-1" in r.getMessage() for r in caplog.records)


def test_invalid_direction_is_rejected(db_session, make_product):
    product = make_product(stock=5)

    with pytest.raises(ValidationError):
        stock_service.apply_sale_effect([_line(product, 1)], "SIDEWAYS")
    assert product.stock == 5


@pytest.mark.parametrize(
    "update_type, quantity, expected_stock, expected_delta",
    [
        ("ADD", 5, 15, 5),
        ("REMOVE", 4, 6, -4),
        ("SET", 3, 3, -7),
    ],
)
def test_manual_update(db_session, user, make_product, update_type, quantity, expected_stock, expected_delta):
    product = make_product(stock=10)

    result = stock_service.apply_manual_update(product.id, update_type, quantity, actor_user_id=user.id)

    assert result.previous_stock == 10
    assert result.new_stock == expected_stock
    assert result.change_amount == expected_delta
    assert product.stock == expected_stock
    assert product.updated_by_user_id == user.id


def test_manual_update_starts_tracking_from_zero(db_session, user, make_product):
    product = make_product(stock=None)

    result = stock_service.apply_manual_update(product.id, "ADD", 7, actor_user_id=user.id)

    assert result.previous_stock == 0
    assert result.new_stock == 7


def test_manual_update_validation(db_session, user, make_product):
    product = make_product(stock=10)

    with pytest.raises(ValidationError):
        stock_service.apply_manual_update(product.id, "MULTIPLY", 2, actor_user_id=user.id)
    with pytest.raises(ValidationError):
        stock_service.apply_manual_update(product.id, "ADD", -1, actor_user_id=user.id)
    with pytest.raises(ValidationError):
        stock_service.apply_manual_update(product.id, "ADD", 1.5, actor_user_id=user.id)
    with pytest.raises(NotFoundError):
        stock_service.apply_manual_update(999999, "ADD", 1, actor_user_id=user.id)

    assert product.stock == 10


def test_update_low_stock_alert(db_session, user, make_product):
    product = make_product(stock=4)

    stock_service.update_low_stock_alert(product.id, 5, actor_user_id=user.id)

    assert product.low_stock_alert == 5
    with pytest.raises(ValidationError):
        stock_service.update_low_stock_alert(product.id, -2, actor_user_id=user.id)


def test_list_stock_alerts_orders_by_severity(db_session, make_product):
    low = make_product(code="LOW", stock=2, low_stock_alert=3)
    negative = make_product(code="NEG", stock=-4, low_stock_alert=3)
    make_product(code="OK", stock=20, low_stock_alert=3)
    make_product(code="UNTRACKED", stock=None, low_stock_alert=3)
    make_product(code="GONE", stock=-10, low_stock_alert=3, is_active=False)

    alerts = stock_service.list_stock_alerts()

    assert [a["product_code"] for a in alerts] == [negative.code, low.code]
    assert [a["severity"] for a in alerts] == ["CRITICAL", "WARNING"]
