"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from main import app, init_services
from reporting_gateway.clients import DataStoreError
from reporting_gateway.config import Settings
from reporting_gateway.services import IdentityVerifier, JWTService

TEST_JWT_SECRET = "test-jwt-secret-with-enough-length"
ADMIN_USER_ID = "admin-user-1"
CASHIER_USER_ID = "cashier-user-2"


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeDataStore:
    """In-memory stand-in for the data service client."""

    def __init__(self):
        self.roles = {}
        self.rows = {}
        self.role_lookups = []
        self.rpc_calls = []
        self.inserts = []
        self.rpc_error = None
        self.rpc_delay = 0.0
        self.role_lookup_error = None
        self.insert_error = None

    async def fetch_user_role(self, user_id):
        self.role_lookups.append(user_id)
        if self.role_lookup_error:
            raise self.role_lookup_error
        return self.roles.get(user_id)

    async def rpc(self, name, params):
        self.rpc_calls.append((name, params))
        if self.rpc_delay:
            await asyncio.sleep(self.rpc_delay)
        if self.rpc_error:
            raise DataStoreError(self.rpc_error)
        rows = self.rows.get(name, [])
        limit = params.get("p_limit")
        return rows[:limit] if limit else rows

    async def insert(self, table, row):
        if self.insert_error:
            raise self.insert_error
        self.inserts.append((table, row))


def make_token(user_id, role=None, expires_in=timedelta(hours=1), secret=TEST_JWT_SECRET):
    """Mint an access token shaped like the identity service's."""
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + expires_in,
        "user_metadata": {"role": role} if role else {},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def data_store():
    store = FakeDataStore()
    store.roles[ADMIN_USER_ID] = "admin"
    store.roles[CASHIER_USER_ID] = "cashier"
    store.rows["reports.top_products"] = [
        {"product_name": "Espresso", "total_quantity": 40},
        {"product_name": "Latte", "total_quantity": 31},
        {"product_name": "Croissant", "total_quantity": 18},
        {"product_name": "Muffin", "total_quantity": 9},
    ]
    store.rows["reports.sales_by_category"] = [{"category": "Drinks", "total": 120.5}]
    store.rows["reports.sales_summary"] = [{"orders": 12, "revenue": 340.0}]
    return store


@pytest.fixture
def test_settings():
    return Settings(
        SUPABASE_URL="http://supabase.test",
        SUPABASE_SERVICE_ROLE_KEY="service-role-key",
        SUPABASE_JWT_SECRET=TEST_JWT_SECRET,
        ALLOWED_ORIGINS="http://localhost:5173,http://localhost:3000",
        REPORTING_API_SECRET=None,
        MAX_RPC_TIMEOUT_MS=200,
        RATE_LIMIT_BURST=10,
        RATE_REFILL_INTERVAL_MS=6000,
        RATE_REFILL_AMOUNT=1,
    )


@pytest_asyncio.fixture
async def client(test_settings, data_store):
    """Create test client with services initialized in app state."""
    identity_verifier = IdentityVerifier(jwt_service=JWTService(TEST_JWT_SECRET))
    init_services(app, test_settings, data_store, identity_verifier)
    await app.state.audit_logger.start()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    await app.state.audit_logger.stop(drain=False)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(ADMIN_USER_ID)}"}


@pytest.fixture
def cashier_headers():
    return {"Authorization": f"Bearer {make_token(CASHIER_USER_ID)}"}
