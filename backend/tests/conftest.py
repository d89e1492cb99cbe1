"""
Pytest fixtures for back-office tests.

Provides test database setup, reference data fixtures, a product factory,
and the test client.
"""

from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import (
    Category,
    Customer,
    Location,
    Material,
    Procedure,
    Product,
    ProductMaterial,
    ProductProcedure,
    Supplier,
    User,
)
from backoffice.services.auth_service import hash_password
from backoffice.services.cost_service import refresh_suggested_prices


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def user(db_session):
    user = User(
        username="owner",
        email="owner@workshop.local",
        password_hash=hash_password("Password123!"),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def auth_headers(user):
    return {"X-User-Id": str(user.id)}


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Necklaces")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def location(db_session):
    location = Location(name="Main Shop")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(first_name="Maria", last_name="Papadopoulou", email="maria@example.com")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Bead Wholesale", tin="123456789")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def material(db_session):
    material = Material(name="Silver wire", current_unit_cost=Decimal("10.00"), unit_of_measure="m")
    db_session.add(material)
    db_session.commit()
    return material


@pytest.fixture(scope='function')
def procedure(db_session):
    procedure = Procedure(name="Polishing")
    db_session.add(procedure)
    db_session.commit()
    return procedure


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """
    Factory for priced products.

    materials:  [(Material, quantity)]
    procedures: [(Procedure, cost)]
    """
    counter = {"n": 0}

    def _make(
        *,
        code=None,
        name=None,
        retail="40.50",
        wholesale="25.11",
        stock=None,
        low_stock_alert=None,
        minutes_to_make=None,
        materials=(),
        procedures=(),
        is_active=True,
    ):
        counter["n"] += 1
        product = Product(
            code=code or f"P{counter['n']:03d}",
            name=name or f"Product {counter['n']}",
            category_id=category.id,
            final_selling_price_retail=Decimal(retail) if retail is not None else None,
            final_selling_price_wholesale=Decimal(wholesale) if wholesale is not None else None,
            stock=stock,
            low_stock_alert=low_stock_alert,
            minutes_to_make=minutes_to_make,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.flush()

        for mat, quantity in materials:
            db_session.add(ProductMaterial(product_id=product.id, material_id=mat.id, quantity=Decimal(str(quantity))))
        for proc, cost in procedures:
            db_session.add(ProductProcedure(product_id=product.id, procedure_id=proc.id, cost=Decimal(str(cost))))

        refresh_suggested_prices(product)
        db_session.commit()
        return product

    return _make
