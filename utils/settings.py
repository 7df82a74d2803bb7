"""Application settings loaded from the environment."""

import os

from dotenv import load_dotenv

from pydantic import BaseModel, Field, field_validator

from typing import Annotated, List, Optional


load_dotenv()


MIN_SECRET_BYTES = 32
MIN_BCRYPT_ROUNDS = 10


class Settings(BaseModel):
    """Runtime configuration for the gallery API."""

    jwt_secret: Annotated[str, Field(min_length=1)]
    jwt_expiration_ms: Annotated[int, Field(gt=0, default=86_400_000)]
    jwt_refresh_expiration_ms: Annotated[int, Field(gt=0, default=604_800_000)]

    rate_limit_auth_capacity: Annotated[int, Field(gt=0, default=10)]
    rate_limit_login_capacity: Annotated[int, Field(gt=0, default=5)]
    rate_limit_auth_window_seconds: Annotated[int, Field(gt=0, default=60)]

    denylist_url: Annotated[str, Field(default="redis://localhost:6379/0")]
    denylist_timeout_ms: Annotated[int, Field(gt=0, default=100)]
    directory_timeout_ms: Annotated[int, Field(gt=0, default=100)]

    database_connection_string: Annotated[str, Field(default="mongodb://localhost:27017")]
    database_name: Annotated[str, Field(default="artwork_gallery")]
    use_memory_store: Annotated[bool, Field(default=False)]

    bcrypt_rounds: Annotated[int, Field(default=12)]
    bcrypt_max_workers: Annotated[int, Field(gt=0, default=4)]

    cors_allowed_origins: Annotated[List[str], Field(default=["http://localhost:3000", "http://localhost:5173"])]
    logfire_write_token: Annotated[Optional[str], Field(default=None)]

    @field_validator("jwt_secret")
    @classmethod
    def check_secret_length(cls, v: str) -> str:
        if len(v.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def check_bcrypt_rounds(cls, v: int) -> int:
        if v < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be at least {MIN_BCRYPT_ROUNDS}")
        return v

    @property
    def access_ttl_seconds(self) -> float:
        return self.jwt_expiration_ms / 1000

    @property
    def refresh_ttl_seconds(self) -> float:
        return self.jwt_refresh_expiration_ms / 1000


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Build `Settings` from environment variables.

    Raises:
        pydantic.ValidationError: When a required value is missing or invalid,
            e.g. `JWT_SECRET` shorter than 32 bytes. Callers treat this as fatal.
    """
    values = {
        "jwt_secret": os.getenv("JWT_SECRET", ""),
        "denylist_url": os.getenv("DENYLIST_URL"),
        "database_connection_string": os.getenv("DATABASE_CONNECTION_STRING"),
        "database_name": os.getenv("DATABASE_NAME"),
        "use_memory_store": _env_bool("USE_MEMORY_STORE"),
        "logfire_write_token": os.getenv("LOGFIRE_WRITE_TOKEN"),
    }

    for field, env_name in (
        ("jwt_expiration_ms", "JWT_EXPIRATION_MS"),
        ("jwt_refresh_expiration_ms", "JWT_REFRESH_EXPIRATION_MS"),
        ("rate_limit_auth_capacity", "RATE_LIMIT_AUTH_CAPACITY"),
        ("rate_limit_login_capacity", "RATE_LIMIT_LOGIN_CAPACITY"),
        ("rate_limit_auth_window_seconds", "RATE_LIMIT_AUTH_WINDOW_SECONDS"),
        ("denylist_timeout_ms", "DENYLIST_TIMEOUT_MS"),
        ("directory_timeout_ms", "DIRECTORY_TIMEOUT_MS"),
        ("bcrypt_rounds", "BCRYPT_ROUNDS"),
        ("bcrypt_max_workers", "BCRYPT_MAX_WORKERS"),
    ):
        raw = os.getenv(env_name)
        if raw is not None:
            values[field] = raw

    origins = os.getenv("CORS_ALLOWED_ORIGINS")
    if origins:
        values["cors_allowed_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    return Settings(**{k: v for k, v in values.items() if v is not None})
