import asyncio

import pytest

from fastapi.testclient import TestClient

import services.auth

from main import create_app
from security.denylist import Denylist
from security.keystore import KeyStore
from security.passwords import PasswordHasher
from security.tokens import TokenCodec
from services.auth import AuthService
from services.storage import MemoryStore

from conftest import STRONG_PASSWORD, TEST_SECRET, make_settings
from test_denylist import BrokenRedis, CancellingRedis, SlowRedis


def test_register_returns_user_tokens_and_redirect(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "New.Artist@Gallery.io",
            "password": STRONG_PASSWORD,
            "firstName": "New",
            "lastName": "Artist",
            "role": "ROLE_ARTIST",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "new.artist@gallery.io"
    assert body["user"]["role"] == "ARTIST"
    assert "password" not in body["user"]
    assert body["tokens"]["accessToken"] != body["tokens"]["refreshToken"]
    assert body["redirectUrl"] == "/dashboard/artist"


def test_register_defaults_to_customer(register_user):
    body = register_user(role="")

    assert body["user"]["role"] == "CUSTOMER"
    assert body["redirectUrl"] == "/dashboard/customer"


def test_admin_cannot_self_register(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "root@gallery.io", "password": STRONG_PASSWORD, "firstName": "R", "lastName": "T", "role": "ADMIN"},
    )

    assert response.status_code == 400
    assert "role" in response.json()["validationErrors"]


def test_unknown_role_is_a_validation_error(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "x@gallery.io", "password": STRONG_PASSWORD, "firstName": "X", "lastName": "Y", "role": "CURATOR"},
    )

    assert response.status_code == 400


def test_duplicate_email_is_409(client, register_user):
    register_user(email="dup@gallery.io")

    response = client.post(
        "/api/auth/register",
        json={"email": "DUP@gallery.io", "password": STRONG_PASSWORD, "firstName": "D", "lastName": "U"},
    )

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Email already registered"}


def test_weak_password_lists_every_violated_rule(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "weak@gallery.io", "password": "weak", "firstName": "W", "lastName": "K"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert len(body["validationErrors"]["password"]) == 4


def test_malformed_request_is_400_with_field_errors(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": STRONG_PASSWORD})

    assert response.status_code == 400
    errors = response.json()["validationErrors"]
    assert "email" in errors
    assert "firstName" in errors


def test_login_returns_same_shape(client, register_user):
    register_user(email="login@gallery.io", role="ARTIST")

    response = client.post("/api/auth/login", json={"email": "login@gallery.io", "password": STRONG_PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "login@gallery.io"
    assert body["tokens"]["accessToken"]
    assert body["tokens"]["refreshToken"]
    assert body["redirectUrl"] == "/dashboard/artist"


@pytest.mark.parametrize(
    "email,password",
    [("login@gallery.io", "Wr0ng!pass"), ("nobody@gallery.io", STRONG_PASSWORD)],
)
def test_login_failures_are_indistinguishable(client, register_user, email, password):
    register_user(email="login@gallery.io")

    response = client.post("/api/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_refresh_mints_access_token_with_same_identity(client, register_user, bearer):
    body = register_user(role="ARTIST")
    refresh_token = body["tokens"]["refreshToken"]

    first = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
    second = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})

    assert first.status_code == 200
    assert second.status_code == 200  # not rotated
    assert first.json()["success"] is True

    for response in (first, second):
        debug = client.get("/api/debug/auth", headers=bearer(response.json()["data"]["accessToken"]))
        assert debug.json()["subject"] == body["user"]["id"]
        assert debug.json()["role"] == "ROLE_ARTIST"


def test_access_token_cannot_be_used_to_refresh(client, register_user):
    body = register_user()

    response = client.post("/api/auth/refresh", json={"refreshToken": body["tokens"]["accessToken"]})

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.parametrize("payload", [{}, {"refreshToken": "garbage"}])
def test_invalid_refresh_is_401(client, payload):
    response = client.post("/api/auth/refresh", json=payload)

    assert response.status_code == 401


def test_refresh_after_logout_is_401(client, register_user, bearer):
    body = register_user()
    tokens = body["tokens"]

    client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=bearer(tokens["accessToken"]))
    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert response.status_code == 401
    assert response.json()["message"] == "Token has been revoked"


def test_logout_is_idempotent(client, register_user, bearer):
    tokens = register_user()["tokens"]

    for _ in range(2):
        response = client.post(
            "/api/auth/logout",
            json={"refreshToken": tokens["refreshToken"]},
            headers=bearer(tokens["accessToken"]),
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}


def test_logout_without_tokens_still_succeeds(client):
    assert client.post("/api/auth/logout").status_code == 200


def test_logout_revokes_with_remaining_ttl(client, app, fake_redis, register_user, bearer):
    tokens = register_user()["tokens"]

    client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=bearer(tokens["accessToken"]))

    access_ttl = client.portal.call(fake_redis.ttl, f"BLACKLIST:{tokens['accessToken']}")
    refresh_ttl = client.portal.call(fake_redis.ttl, f"BLACKLIST:{tokens['refreshToken']}")
    assert 86_390 <= access_ttl <= 86_400
    assert 604_790 <= refresh_ttl <= 604_800


def test_verify_returns_profile_with_authorities(client, register_user, bearer):
    body = register_user(role="ARTIST")

    response = client.get("/api/auth/verify", headers=bearer(body["tokens"]["accessToken"]))

    assert response.status_code == 200
    assert response.json()["id"] == body["user"]["id"]
    assert response.json()["authorities"] == ["ROLE_ARTIST"]


def test_verify_without_principal_is_401(client):
    assert client.get("/api/auth/verify").status_code == 401


def test_change_password(client, register_user, bearer):
    body = register_user(email="change@gallery.io")
    headers = bearer(body["tokens"]["accessToken"])

    response = client.put(
        "/api/users/password",
        json={"currentPassword": STRONG_PASSWORD, "newPassword": "N3w!Passw0rd"},
        headers=headers,
    )

    assert response.status_code == 200
    assert client.post("/api/auth/login", json={"email": "change@gallery.io", "password": STRONG_PASSWORD}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "change@gallery.io", "password": "N3w!Passw0rd"}).status_code == 200


def test_change_password_with_wrong_current_password(client, register_user, bearer):
    body = register_user()

    response = client.put(
        "/api/users/password",
        json={"currentPassword": "Wr0ng!pass", "newPassword": "N3w!Passw0rd"},
        headers=bearer(body["tokens"]["accessToken"]),
    )

    assert response.status_code == 401


def test_change_password_enforces_policy(client, register_user, bearer):
    body = register_user()

    response = client.put(
        "/api/users/password",
        json={"currentPassword": STRONG_PASSWORD, "newPassword": "short"},
        headers=bearer(body["tokens"]["accessToken"]),
    )

    assert response.status_code == 400
    assert "newPassword" in response.json()["validationErrors"]


def test_inactive_user_cannot_log_in(client, store, register_user):
    body = register_user(email="gone@gallery.io")
    asyncio.run(store.update_user(body["user"]["id"], is_active=False))

    response = client.post("/api/auth/login", json={"email": "gone@gallery.io", "password": STRONG_PASSWORD})

    assert response.status_code == 401


# Denylist outages


@pytest.fixture
def outage_client(store):
    app = create_app(make_settings(), store=store, redis_client=BrokenRedis())
    with TestClient(app) as test_client:
        yield test_client


def test_logout_succeeds_while_denylist_is_down(outage_client):
    tokens = outage_client.post(
        "/api/auth/register",
        json={"email": "down@gallery.io", "password": STRONG_PASSWORD, "firstName": "D", "lastName": "N"},
    ).json()["tokens"]

    response = outage_client.post(
        "/api/auth/logout",
        json={"refreshToken": tokens["refreshToken"]},
        headers={"Authorization": f"Bearer {tokens['accessToken']}"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}


def test_refresh_fails_open_while_denylist_is_down(outage_client):
    tokens = outage_client.post(
        "/api/auth/register",
        json={"email": "open@gallery.io", "password": STRONG_PASSWORD, "firstName": "O", "lastName": "P"},
    ).json()["tokens"]

    response = outage_client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert response.status_code == 200
    assert response.json()["data"]["accessToken"]


class RecordingCounter:
    def __init__(self):
        self.calls = []

    def add(self, amount, attributes=None):
        self.calls.append(attributes)


@pytest.fixture
def lost_revocations(monkeypatch):
    counter = RecordingCounter()
    monkeypatch.setattr(services.auth, "lost_revocation_counter", counter)
    return counter


def auth_service_with(redis_client) -> AuthService:
    codec = TokenCodec(KeyStore(secret=TEST_SECRET.encode(), access_ttl=3600, refresh_ttl=7200))
    return AuthService(MemoryStore(), codec, Denylist(redis_client), PasswordHasher(rounds=10))


def _pair(service: AuthService):
    return (
        service.codec.mint("u1", "u1@gallery.io", "CUSTOMER", "access"),
        service.codec.mint("u1", "u1@gallery.io", "CUSTOMER", "refresh"),
    )


async def test_cancelled_revocation_on_logout_is_reported(lost_revocations):
    service = auth_service_with(CancellingRedis())

    revoked = await service.logout(*_pair(service))

    assert revoked == 0
    assert lost_revocations.calls == [
        {"kind": "access", "reason": "unavailable"},
        {"kind": "refresh", "reason": "unavailable"},
    ]


async def test_logout_cancelled_by_caller_reports_then_propagates(lost_revocations):
    service = auth_service_with(SlowRedis(delay=5))
    service.denylist.timeout = 10

    task = asyncio.create_task(service.logout(*_pair(service)))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert lost_revocations.calls == [{"kind": "access", "reason": "cancelled"}]
