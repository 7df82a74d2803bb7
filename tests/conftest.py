import asyncio
import inspect
import itertools
import os

TEST_SECRET = "test-secret-key-for-testing-only-do-not-use-in-production"

os.environ.setdefault("JWT_SECRET", TEST_SECRET)
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "10")

import pytest  # noqa: E402
from fakeredis.aioredis import FakeRedis  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from main import create_app  # noqa: E402
from services.storage import MemoryStore  # noqa: E402
from utils.settings import Settings  # noqa: E402


STRONG_PASSWORD = "P@ssw0rd!"


def make_settings(**overrides) -> Settings:
    values = dict(
        jwt_secret=TEST_SECRET,
        use_memory_store=True,
        bcrypt_rounds=10,
        # Generous limits so that only the rate limit tests ever hit them
        rate_limit_auth_capacity=10_000,
        rate_limit_login_capacity=10_000,
    )
    values.update(overrides)
    return Settings(**values)


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def fake_redis():
    return FakeRedis(decode_responses=True)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(settings, store, fake_redis):
    return create_app(settings, store=store, redis_client=fake_redis)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def bearer():
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _bearer


@pytest.fixture
def register_user(client):
    """Register through the API, each call from its own client address."""
    counter = itertools.count(1)

    def _register(email=None, role="CUSTOMER", password=STRONG_PASSWORD, first_name="Test", last_name="User"):
        n = next(counter)
        response = client.post(
            "/api/auth/register",
            json={
                "email": email or f"{role.lower()}{n}@gallery.io",
                "password": password,
                "firstName": first_name,
                "lastName": last_name,
                "role": role,
            },
            headers={"X-Forwarded-For": f"10.0.0.{n}"},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def mint_token(app):
    """Mint a token for an existing user without going through login."""

    def _mint(user_id: str, email: str, role: str, kind: str = "access") -> str:
        return app.state.codec.mint(user_id, email, role, kind)

    return _mint
