"""
Pytest fixtures for the dealership backend tests.

Provides an in-memory database, staff users per role, warehouses, agents
(with and without a login), vehicles and auth-header helpers.
"""

import pytest

from dealership import create_app
from dealership.extensions import db
from dealership.models import User, Warehouse
from dealership.services import agent_service, inventory_service
from dealership.services.auth_service import hash_password


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEFAULT_COMMISSION_BPS': 1000,
        'OCR_SERVICE_URL': '',
        'OCR_API_KEY': '',
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
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# WAREHOUSES
# =============================================================================


@pytest.fixture(scope='function')
def main_warehouse(db_session):
    warehouse = Warehouse(name="Main warehouse", type="main")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def showroom(db_session):
    warehouse = Warehouse(name="Showroom", type="showroom")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


# =============================================================================
# USERS
# =============================================================================


def _make_user(db_session, username: str, role: str, warehouse_id: int | None = None) -> User:
    user = User(
        username=username,
        email=f"{username}@dealer.test",
        password_hash=hash_password(PASSWORD),
        role=role,
        warehouse_id=warehouse_id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def super_admin(db_session):
    return _make_user(db_session, "root", "super_admin")


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "office", "admin")


@pytest.fixture(scope='function')
def showroom_user(db_session, showroom):
    return _make_user(db_session, "clerk", "showroom_user", warehouse_id=showroom.id)


# =============================================================================
# AGENTS / VEHICLES
# =============================================================================


@pytest.fixture(scope='function')
def make_agent(db_session, admin_user):
    """Factory: make_agent("Name", username=None, opening=0, rate=None)."""
    counter = {"n": 0}

    def _make(name: str, *, username: str | None = None, opening: int = 0, rate: int | None = None):
        counter["n"] += 1
        payload = {"name": name, "phone": f"0100000{counter['n']:04d}"}
        if rate is not None:
            payload["commission_rate_bps"] = rate
        account = None
        if username:
            account = {"username": username, "email": f"{username}@dealer.test", "password": PASSWORD}
        return agent_service.create_agent(
            payload,
            opening_balance_cents=opening,
            account=account,
            created_by_user_id=admin_user.id,
        )

    return _make


@pytest.fixture(scope='function')
def online_agent(make_agent):
    return make_agent("Karim Motors", username="karim")


@pytest.fixture(scope='function')
def offline_agent(make_agent):
    return make_agent("Hassan Trading")


@pytest.fixture(scope='function')
def make_item(db_session, main_warehouse):
    """Factory: make_item(purchase=..., sale=..., warehouse_id=...)."""
    counter = {"n": 0}

    def _make(*, purchase: int = 10000, sale: int | None = 15000, warehouse_id: int | None = None, **extra):
        counter["n"] += 1
        payload = {
            "motor_fingerprint": f"MF-{counter['n']:05d}",
            "chassis_number": f"CH-{counter['n']:05d}",
            "brand": "Honda",
            "model": "CB150",
            "color": "Red",
            "purchase_price_cents": purchase,
            "current_warehouse_id": warehouse_id or main_warehouse.id,
        }
        if sale is not None:
            payload["sale_price_cents"] = sale
        payload.update(extra)
        return inventory_service.create_item(payload)

    return _make


# =============================================================================
# AUTH HELPERS
# =============================================================================


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
def super_admin_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def showroom_headers(client, showroom_user):
    return auth_headers(get_auth_token(client, showroom_user.username))


@pytest.fixture(scope='function')
def agent_headers(client, online_agent):
    return auth_headers(get_auth_token(client, "karim"))
