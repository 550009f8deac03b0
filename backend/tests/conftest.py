"""
Pytest fixtures for POS backend tests.

Provides an in-memory database, one user per role, bearer-token headers
and a small product catalog.
"""

from decimal import Decimal

import pytest
from pos import create_app
from pos.extensions import db
from pos.models import Product, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from pos.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPORT_TIMEZONE': 'UTC',
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
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", PASSWORD, "Admin User", email="admin@pos.local", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_user("manager", PASSWORD, "Manager User", email="manager@pos.local", role=ROLE_MANAGER)


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return create_user("cashier", PASSWORD, "Cashier User", email="cashier@pos.local", role=ROLE_CASHIER)


def make_product(db_session, sku: str, name: str, price: str, stock: int, **extra) -> Product:
    product = Product(sku=sku, name=name, price=Decimal(price), stock_quantity=stock, **extra)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_factory(db_session):
    """Build-and-commit helper for tests that need a custom catalog."""
    def _make(sku: str, name: str, price: str = "1.00", stock: int = 100, **extra) -> Product:
        return make_product(db_session, sku, name, price, stock, **extra)
    return _make


@pytest.fixture(scope='function')
def product_a(db_session):
    return make_product(db_session, "SKU-A", "Product A", "10.00", 10)


@pytest.fixture(scope='function')
def product_b(db_session):
    return make_product(db_session, "SKU-B", "Product B", "5.50", 3)


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.username))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.username))
