"""
Cost model tests: cost components, suggested prices, bulk recalculation.
"""

from decimal import Decimal

from backoffice.extensions import db
from backoffice.models import Material, Procedure, Product
from backoffice.services import cost_service
from backoffice.services.catalog_service import update_material_cost


def test_labor_cost_rounds_hours_to_four_places():
    assert cost_service.calculate_labor_cost(30) == Decimal("3.50")
    assert cost_service.calculate_labor_cost(45) == Decimal("5.25")
    # 20 / 60 = 0.3333 after rounding, times 7.00
    assert cost_service.calculate_labor_cost(20) == Decimal("2.3331")


def test_labor_cost_is_zero_without_minutes():
    assert cost_service.calculate_labor_cost(None) == Decimal("0")
    assert cost_service.calculate_labor_cost(0) == Decimal("0")
    assert cost_service.calculate_labor_cost(-5) == Decimal("0")


def test_suggested_prices_from_material_and_labor(make_product, material):
    product = make_product(minutes_to_make=30, materials=[(material, 1)])

    breakdown = cost_service.calculate_cost_breakdown(product)
    assert breakdown.material_cost == Decimal("10.00")
    assert breakdown.labor_cost == Decimal("3.50")
    assert breakdown.total_cost == Decimal("13.50")

    assert product.suggested_retail_selling_price == Decimal("40.50")
    assert product.suggested_wholesale_selling_price == Decimal("25.11")


def test_procedure_costs_are_summed(db_session, make_product, procedure):
    engraving = Procedure(name="Engraving")
    db_session.add(engraving)
    db_session.commit()

    product = make_product(procedures=[(procedure, "2.00"), (engraving, "1.50")])

    assert cost_service.calculate_procedure_cost(product.id) == Decimal("3.50")
    assert product.suggested_retail_selling_price == Decimal("10.50")
    assert product.suggested_wholesale_selling_price == Decimal("6.51")


def test_material_without_unit_cost_contributes_zero(db_session, make_product, material):
    unpriced = Material(name="Leather cord", current_unit_cost=None)
    db_session.add(unpriced)
    db_session.commit()

    product = make_product(materials=[(material, "0.5"), (unpriced, 3)])

    assert cost_service.calculate_material_cost(product.id) == Decimal("5.000")


def test_refresh_reports_no_change_when_inputs_are_unchanged(make_product, material):
    product = make_product(minutes_to_make=30, materials=[(material, 1)])

    assert cost_service.refresh_suggested_prices(product) is False


def test_material_cost_change_reprices_dependent_products(db_session, user, make_product, material):
    uses_material = make_product(materials=[(material, 2)])
    unrelated = make_product(minutes_to_make=60)

    _, repriced = update_material_cost(material.id, "12.00", actor_user_id=user.id)

    assert repriced == 1
    assert uses_material.suggested_retail_selling_price == Decimal("72.00")
    assert uses_material.updated_by_user_id == user.id
    assert unrelated.suggested_retail_selling_price == Decimal("21.00")


def test_bulk_recalculation_is_idempotent(db_session, user, make_product, material):
    make_product(materials=[(material, 1)])
    make_product(minutes_to_make=30)

    material.current_unit_cost = Decimal("11.00")
    db_session.commit()

    first = cost_service.recalculate_all_product_prices(user.id)
    assert first.total_products == 2
    assert first.updated_products == 1
    assert first.skipped_products == 1
    assert first.failed_products == 0
    assert first.processed_by_username == "owner"
    assert first.processed_at is not None

    second = cost_service.recalculate_all_product_prices(user.id)
    assert second.updated_products == 0
    assert second.skipped_products == 2


def test_bulk_recalculation_skips_inactive_products(db_session, user, make_product, material):
    make_product(materials=[(material, 1)])
    make_product(materials=[(material, 1)], is_active=False)

    result = cost_service.recalculate_all_product_prices(user.id)

    assert result.total_products == 1


def test_bulk_recalculation_counts_failures_and_continues(db_session, user, make_product, material, monkeypatch):
    good = make_product(code="GOOD", materials=[(material, 1)])
    bad = make_product(code="BAD", materials=[(material, 1)])
    bad_id = bad.id

    material.current_unit_cost = Decimal("20.00")
    db_session.commit()

    real_compute = cost_service.compute_suggested_prices

    def flaky_compute(product):
        if product.code == "BAD":
            raise RuntimeError("boom")
        return real_compute(product)

    monkeypatch.setattr(cost_service, "compute_suggested_prices", flaky_compute)

    result = cost_service.recalculate_all_product_prices(user.id)

    assert result.updated_products == 1
    assert result.failed_products == 1
    assert result.failed_product_codes == ["BAD"]
    assert good.suggested_retail_selling_price == Decimal("60.00")
    # Failed product keeps its previous prices
    assert db.session.get(Product, bad_id).suggested_retail_selling_price == Decimal("30.00")
