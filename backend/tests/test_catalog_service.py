"""
Reference data and purchase tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from backoffice.services import catalog_service, purchase_service
from backoffice.services.lifecycle_service import delete_entity
from backoffice.time_utils import today
from backoffice.validation import ConflictError, NotFoundError, ValidationError


def test_create_reference_rows(db_session, user):
    category = catalog_service.create_category({"name": "Rings"}, actor_user_id=user.id)
    material = catalog_service.create_material(
        {"name": "Gold leaf", "current_unit_cost": "3.25", "unit_of_measure": "sheet"},
        actor_user_id=user.id,
    )

    assert category.id is not None
    assert category.created_by_user_id == user.id
    assert material.current_unit_cost == Decimal("3.25")


def test_unique_names_and_tax_ids(db_session, user, category, customer, supplier):
    with pytest.raises(ConflictError):
        catalog_service.create_category({"name": "Necklaces"}, actor_user_id=user.id)
    with pytest.raises(ConflictError):
        catalog_service.create_customer(
            {"first_name": "Eleni", "last_name": "K", "email": "maria@example.com"},
            actor_user_id=user.id,
        )
    with pytest.raises(ConflictError):
        catalog_service.create_supplier({"name": "Other", "tin": "123456789"}, actor_user_id=user.id)


def test_required_and_unknown_fields(db_session, user):
    with pytest.raises(ValidationError):
        catalog_service.create_category({}, actor_user_id=user.id)
    with pytest.raises(ValidationError):
        catalog_service.create_location({"name": "Stall", "is_active": False}, actor_user_id=user.id)
    with pytest.raises(ValidationError):
        catalog_service.create_material({"name": "Clay", "current_unit_cost": "-1"}, actor_user_id=user.id)


def test_update_material_cost_validates(db_session, user, material):
    with pytest.raises(ValidationError):
        catalog_service.update_material_cost(material.id, "1.234", actor_user_id=user.id)
    with pytest.raises(NotFoundError):
        catalog_service.update_material_cost(99999, "1.00", actor_user_id=user.id)


def test_record_purchase_totals_lines(db_session, user, supplier, material):
    purchase = purchase_service.record_purchase(
        {
            "supplier_id": supplier.id,
            "lines": [
                {"material_id": material.id, "quantity": "2.5", "unit_price": "1.99"},
                {"material_id": material.id, "quantity": "1", "unit_price": "10.00"},
            ],
        },
        actor_user_id=user.id,
    )

    # 4.975 + 10.00 rounds half-up to 14.98
    assert purchase.total_cost == Decimal("14.98")
    assert purchase.purchase_date == today()
    assert len(purchase.lines) == 2
    assert purchase.lines[0].material_name_snapshot == "Silver wire"


def test_purchase_rules(db_session, user, supplier, material):
    tomorrow = (today() + timedelta(days=1)).isoformat()
    line = {"material_id": material.id, "quantity": "1", "unit_price": "1.00"}

    with pytest.raises(ValidationError):
        purchase_service.record_purchase({"supplier_id": supplier.id, "lines": []}, actor_user_id=user.id)
    with pytest.raises(ValidationError):
        purchase_service.record_purchase(
            {"supplier_id": supplier.id, "purchase_date": tomorrow, "lines": [line]},
            actor_user_id=user.id,
        )
    with pytest.raises(ValidationError):
        purchase_service.record_purchase(
            {"supplier_id": supplier.id, "lines": [{**line, "quantity": "0"}]},
            actor_user_id=user.id,
        )


def test_inactive_supplier_cannot_receive_purchases(db_session, user, supplier, material):
    line = {"material_id": material.id, "quantity": "1", "unit_price": "1.00"}
    purchase_service.record_purchase({"supplier_id": supplier.id, "lines": [line]}, actor_user_id=user.id)

    assert delete_entity("supplier", supplier.id, actor_user_id=user.id) == "SOFT_DELETED"
    with pytest.raises(ValidationError):
        purchase_service.record_purchase({"supplier_id": supplier.id, "lines": [line]}, actor_user_id=user.id)


def test_delete_purchase_frees_supplier(db_session, user, supplier, material):
    purchase = purchase_service.record_purchase(
        {"supplier_id": supplier.id, "lines": [{"material_id": material.id, "quantity": "1", "unit_price": "1"}]},
        actor_user_id=user.id,
    )

    purchase_service.delete_purchase(purchase.id)

    assert delete_entity("supplier", supplier.id, actor_user_id=user.id) == "HARD_DELETED"
