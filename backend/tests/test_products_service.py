"""
Product catalog tests: cost inputs, suggested prices, mispricing detection.
"""

from decimal import Decimal

import pytest

from backoffice.services import products_service
from backoffice.services.products_service import (
    determine_pricing_issue_type,
    find_mispriced_products,
    price_difference_percentage,
)
from backoffice.validation import ConflictError, NotFoundError, ValidationError


def _payload(category, **extra):
    payload = {
        "code": "NECK-01",
        "name": "Silver necklace",
        "category_id": category.id,
        "final_selling_price_retail": "45.00",
        "final_selling_price_wholesale": "27.00",
    }
    payload.update(extra)
    return payload


def test_create_product_with_lines_is_priced(db_session, user, category, material, procedure):
    product = products_service.create_product(
        _payload(
            category,
            minutes_to_make=30,
            materials=[{"material_id": material.id, "quantity": "1.00"}],
            procedures=[{"procedure_id": procedure.id, "cost": "1.50"}],
        ),
        actor_user_id=user.id,
    )

    # 10.00 material + 3.50 labor + 1.50 procedure
    assert product.suggested_retail_selling_price == Decimal("45.00")
    assert product.suggested_wholesale_selling_price == Decimal("27.90")
    assert product.created_by_user_id == user.id


def test_create_product_rejects_bad_lines(db_session, user, category, material):
    with pytest.raises(ValidationError):
        products_service.create_product(
            _payload(category, materials=[{"material_id": material.id, "quantity": "0"}]),
            actor_user_id=user.id,
        )
    with pytest.raises(ValidationError):
        products_service.create_product(
            _payload(category, materials=[{"material_id": material.id, "quantity": "1.005"}]),
            actor_user_id=user.id,
        )


def test_duplicate_code_conflicts(db_session, user, category, make_product):
    make_product(code="NECK-01")

    with pytest.raises(ConflictError):
        products_service.create_product(_payload(category), actor_user_id=user.id)


def test_changing_minutes_reprices(db_session, user, make_product, material):
    product = make_product(materials=[(material, 1)])
    assert product.suggested_retail_selling_price == Decimal("30.00")

    products_service.update_product(product.id, {"minutes_to_make": 60}, actor_user_id=user.id)

    assert product.suggested_retail_selling_price == Decimal("51.00")


def test_update_cannot_touch_stock(db_session, user, make_product):
    product = make_product(stock=4)

    with pytest.raises(ValidationError):
        products_service.update_product(product.id, {"stock": 100}, actor_user_id=user.id)
    assert product.stock == 4


def test_material_lines_add_replace_remove(db_session, user, make_product, material):
    product = make_product()
    assert product.suggested_retail_selling_price == Decimal("0.00")

    products_service.add_material_line(product.id, material.id, "2", actor_user_id=user.id)
    assert product.suggested_retail_selling_price == Decimal("60.00")

    products_service.add_material_line(product.id, material.id, "1", actor_user_id=user.id)
    assert product.suggested_retail_selling_price == Decimal("30.00")

    products_service.remove_material_line(product.id, material.id, actor_user_id=user.id)
    assert product.suggested_retail_selling_price == Decimal("0.00")

    with pytest.raises(NotFoundError):
        products_service.remove_material_line(product.id, material.id, actor_user_id=user.id)


def test_procedure_cost_must_be_positive(db_session, user, make_product, procedure):
    product = make_product()

    with pytest.raises(ValidationError):
        products_service.add_procedure_line(product.id, procedure.id, "0", actor_user_id=user.id)

    products_service.add_procedure_line(product.id, procedure.id, "4.00", actor_user_id=user.id)
    assert product.suggested_retail_selling_price == Decimal("12.00")


def test_product_detail(db_session, make_product, material):
    product = make_product(
        minutes_to_make=30, materials=[(material, 1)], stock=2, low_stock_alert=5,
    )

    detail = products_service.get_product_detail(product.id)

    assert detail["cost_breakdown"]["total_cost"] == "13.50"
    assert detail["materials"][0]["material_name"] == "Silver wire"
    assert detail["materials"][0]["line_cost"] == "10.00"
    assert detail["stock_status"] == "LOW"


def test_price_difference_percentage():
    assert price_difference_percentage("60.00", "50.00") == Decimal("20.00")
    assert price_difference_percentage("40.00", "50.00") == Decimal("-20.00")
    with pytest.raises(ValidationError):
        price_difference_percentage("40.00", "0")


@pytest.mark.parametrize(
    "retail, wholesale, expected",
    [
        (Decimal("25"), Decimal("30"), "BOTH_UNDERPRICED"),
        (Decimal("25"), Decimal("5"), "RETAIL_UNDERPRICED"),
        (Decimal("5"), Decimal("20"), "WHOLESALE_UNDERPRICED"),
        (Decimal("-40"), Decimal("-40"), "NO_ISSUES"),
    ],
)
def test_issue_type(retail, wholesale, expected):
    assert determine_pricing_issue_type(retail, wholesale, Decimal("20")) == expected


def test_find_mispriced_products(db_session, make_product, material):
    # Suggested 30.00 / 18.60 from one unit of material
    make_product(code="FAIR", materials=[(material, 1)], retail="30.00", wholesale="18.60")
    make_product(code="CHEAP", materials=[(material, 1)], retail="20.00", wholesale="18.60")
    make_product(code="VERY-CHEAP", materials=[(material, 1)], retail="15.00", wholesale="10.00")
    make_product(code="PRICEY", materials=[(material, 1)], retail="75.00", wholesale="18.60")
    make_product(code="NO-FINAL", materials=[(material, 1)], retail=None, wholesale="10.00")
    make_product(code="ZERO", materials=[(material, 1)], retail="0.00", wholesale="10.00")

    flagged = find_mispriced_products(threshold="20")

    assert [m["code"] for m in flagged] == ["VERY-CHEAP", "PRICEY", "CHEAP"]
    assert flagged[0]["issue_type"] == "BOTH_UNDERPRICED"
    assert flagged[0]["retail_difference_percentage"] == "100.00"
    assert flagged[1]["issue_type"] == "NO_ISSUES"
    assert flagged[2]["issue_type"] == "RETAIL_UNDERPRICED"
    assert flagged[1]["retail_difference_percentage"] == "-60.00"


def test_find_mispriced_products_respects_limit(db_session, make_product, material):
    make_product(materials=[(material, 1)], retail="10.00", wholesale="10.00")
    make_product(materials=[(material, 1)], retail="12.00", wholesale="10.00")

    assert len(find_mispriced_products(threshold="20", limit=1)) == 1
