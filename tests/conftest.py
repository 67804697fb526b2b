import pytest
from fastapi.testclient import TestClient

from stocktrack.auth import AuthProvider
from stocktrack.config import AppSettings
from stocktrack.inventory import InventoryLedger
from stocktrack.main import create_app
from stocktrack.orders import OrderWorkflow
from stocktrack.ownership import OwnershipFilter
from stocktrack.store import EntityStore

TEST_SECRET = "test-secret"  # pragma: allowlist secret


@pytest.fixture()
def store():
    return EntityStore()


@pytest.fixture()
def ledger(store):
    return InventoryLedger(store, low_stock_threshold=5)


@pytest.fixture()
def ownership(store, ledger):
    return OwnershipFilter(store, ledger)


@pytest.fixture()
def workflow(store, ledger, ownership):
    return OrderWorkflow(store, ledger, ownership)


@pytest.fixture()
def auth(store):
    return AuthProvider(store, TEST_SECRET, expire_minutes=60)


@pytest.fixture()
def owner(store):
    return store.add_user("alice", "unused-hash")


@pytest.fixture()
def laptop(store, ledger, owner):
    """Item "Laptop" with 10 units in stock."""
    item = store.add_item(owner.id, "Laptop", "Dev laptop")
    ledger.create(item.id, 10)
    return item


@pytest.fixture()
def settings():
    return AppSettings(JWT_SECRET=TEST_SECRET, JSON_LOG=False, SEED_DEMO_DATA=True)


@pytest.fixture()
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture()
def login_as(client):
    """Log in through the API and return the Authorization header."""

    def _login(username, password):
        response = client.post("/login", json={"username": username, "password": password})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture()
def admin_headers(login_as):
    return login_as("admin", "password")  # pragma: allowlist secret


@pytest.fixture()
def user1_headers(login_as):
    return login_as("user1", "user123")  # pragma: allowlist secret
