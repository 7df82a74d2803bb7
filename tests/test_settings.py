import pytest

from pydantic import ValidationError

from utils.settings import load_settings

from conftest import TEST_SECRET


@pytest.fixture
def env(monkeypatch):
    for name in (
        "JWT_EXPIRATION_MS",
        "JWT_REFRESH_EXPIRATION_MS",
        "RATE_LIMIT_AUTH_CAPACITY",
        "RATE_LIMIT_LOGIN_CAPACITY",
        "RATE_LIMIT_AUTH_WINDOW_SECONDS",
        "DENYLIST_URL",
        "DENYLIST_TIMEOUT_MS",
        "CORS_ALLOWED_ORIGINS",
        "BCRYPT_ROUNDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    return monkeypatch


def test_defaults(env):
    settings = load_settings()

    assert settings.access_ttl_seconds == 86_400
    assert settings.refresh_ttl_seconds == 604_800
    assert settings.rate_limit_auth_capacity == 10
    assert settings.rate_limit_login_capacity == 5
    assert settings.rate_limit_auth_window_seconds == 60
    assert settings.denylist_url == "redis://localhost:6379/0"
    assert settings.denylist_timeout_ms == 100
    assert settings.bcrypt_rounds == 12


def test_environment_overrides(env):
    env.setenv("JWT_EXPIRATION_MS", "60000")
    env.setenv("RATE_LIMIT_AUTH_CAPACITY", "3")
    env.setenv("CORS_ALLOWED_ORIGINS", "https://gallery.io, https://admin.gallery.io")
    env.setenv("USE_MEMORY_STORE", "yes")

    settings = load_settings()

    assert settings.access_ttl_seconds == 60
    assert settings.rate_limit_auth_capacity == 3
    assert settings.cors_allowed_origins == ["https://gallery.io", "https://admin.gallery.io"]
    assert settings.use_memory_store is True


@pytest.mark.parametrize("secret", ["", "too-short"])
def test_short_secret_is_fatal(env, secret):
    env.setenv("JWT_SECRET", secret)

    with pytest.raises(ValidationError):
        load_settings()


def test_low_bcrypt_cost_is_fatal(env):
    env.setenv("BCRYPT_ROUNDS", "4")

    with pytest.raises(ValidationError):
        load_settings()
