"""
Pytest fixtures for StockPILE backend tests.

Provides test database setup, a manager and a staff user with session
tokens, and the test client.
"""

import pytest

from stockpile import create_app
from stockpile.extensions import db
from stockpile.models import ROLE_MANAGER, ROLE_STAFF
from stockpile.services import auth_service, session_service


PUBLIC_KEY = "test-public-key"
PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PUBLIC_API_KEY': PUBLIC_KEY,
        'SEED_DEFAULT_PASSWORD': '12345678',
        'LOW_STOCK_THRESHOLD': 10,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """bcrypt at the lowest cost keeps the suite fast."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
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
def manager(db_session):
    """Manager user (full access)."""
    return auth_service.create_user(
        name="Manager One",
        email="manager1@stockpile.test",
        password=PASSWORD,
        role=ROLE_MANAGER,
    )


@pytest.fixture(scope='function')
def staff(db_session):
    """Staff user (sales and inventory only)."""
    return auth_service.create_user(
        name="Staff One",
        email="staff1@stockpile.test",
        password=PASSWORD,
        role=ROLE_STAFF,
    )


@pytest.fixture(scope='function')
def manager_headers(manager):
    _, token = session_service.create_session(manager.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def staff_headers(staff):
    _, token = session_service.create_session(staff.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def public_headers():
    return auth_headers(PUBLIC_KEY)


@pytest.fixture(scope='function')
def seeded(client, public_headers):
    """Sample dataset loaded through the seed endpoint."""
    response = client.post('/seed', headers=public_headers)
    assert response.status_code == 200, response.get_data(as_text=True)
    return response.json


@pytest.fixture(scope='function')
def catalog(client, manager_headers):
    """One category, two products, a provider and a customer; no stock."""
    client.post('/inventory/category', json={'id': 'cat1', 'name': 'Tools'}, headers=manager_headers)
    client.post('/inventory/product', json={'id': 'prod1', 'name': 'Hammer', 'categoryId': 'cat1', 'baseUnitPrice': 15}, headers=manager_headers)
    client.post('/inventory/product', json={'id': 'prod2', 'name': 'Saw', 'categoryId': 'cat1', 'baseUnitPrice': 30}, headers=manager_headers)
    client.post('/partners/provider', json={'id': 'prov1', 'name': 'Tool Supply'}, headers=manager_headers)
    client.post('/partners/customer', json={'id': 'cus1', 'name': 'Builder Co'}, headers=manager_headers)
    return {'category': 'cat1', 'products': ['prod1', 'prod2'], 'provider': 'prov1', 'customer': 'cus1'}


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
