"""
Pytest fixtures for MedTory backend tests.

Provides an in-memory database, employee/catalog/stock factories, bearer
tokens and the Flask test client.
"""

from datetime import timedelta

import pytest

from medtory import create_app
from medtory.extensions import db
from medtory.models import Employee, ProductCategory, Supplier, Product, InventoryBatch
from medtory.permissions import Position
from medtory.services import email_service, session_service
from medtory.services.auth_service import hash_password
from medtory.time_utils import today, utcnow


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'MAIL_SUPPRESS_SEND': True,
        'LOG_LEVEL': 'WARNING',
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
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        email_service.outbox.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def make_employee(db_session):
    """Factory: make_employee("Manager", username="mgr")."""
    counter = {"n": 0}

    def _make(position=Position.CASHIER, *, username=None, password=DEFAULT_PASSWORD,
              contact_info=None, is_active=True):
        counter["n"] += 1
        position = Position.parse(position)
        username = username or f"{position.value.lower()}{counter['n']}"
        employee = Employee(
            username=username,
            password_hash=hash_password(password),
            employee_name=f"{position.value} {counter['n']}",
            position=position.value,
            contact_info=contact_info or f"{username}@medtory.test",
            is_active=is_active,
            created_at=utcnow(),
        )
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make


@pytest.fixture
def owner(make_employee):
    return make_employee(Position.OWNER, username="owner")


@pytest.fixture
def admin(make_employee):
    return make_employee(Position.ADMIN, username="admin")


@pytest.fixture
def manager(make_employee):
    return make_employee(Position.MANAGER, username="manager")


@pytest.fixture
def cashier(make_employee):
    return make_employee(Position.CASHIER, username="cashier")


@pytest.fixture
def category(db_session):
    category = ProductCategory(category_name="Analgesics", is_active=True)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def supplier(db_session):
    supplier = Supplier(name="Unilab Distribution", contact_info="orders@unilab.test")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture
def make_product(db_session, category, supplier):
    """
    Factory: make_product("Biogesic", batches=[(qty, expiry, price_cents, cost_cents), ...]).

    Batch ids follow list order.
    """
    def _make(name="Biogesic 500mg", *, batches=(), is_active=True):
        product = Product(
            name=name,
            description="",
            manufacturer="Unilab",
            category_id=category.id,
            supplier_id=supplier.id,
            is_active=is_active,
            created_at=utcnow(),
        )
        db_session.add(product)
        db_session.flush()
        for i, (qty, expiry, price, cost) in enumerate(batches, start=1):
            db_session.add(InventoryBatch(
                product_id=product.id,
                quantity=qty,
                expiry_date=expiry,
                selling_price_cents=price,
                cost_price_cents=cost,
                batch_number=f"LOT-{product.id}-{i}",
                last_updated=utcnow() - timedelta(days=10 - i),
            ))
        db_session.commit()
        return product

    return _make


@pytest.fixture
def future():
    """Factory for expiry dates relative to today: future(30) is 30 days out."""
    def _future(days):
        return today() + timedelta(days=days)
    return _future


def get_auth_token(employee) -> str:
    """Open a session for `employee` and return the bearer token."""
    _, token = session_service.create_session(employee_id=employee.id)
    return token


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login(db_session):
    """Factory: login(employee) -> request headers carrying a fresh token."""
    def _login(employee):
        return auth_headers(get_auth_token(employee))
    return _login
