"""Signing key and token lifetimes, loaded once at boot."""

from dataclasses import dataclass

from utils.settings import MIN_SECRET_BYTES, Settings


class KeyStoreError(RuntimeError):
    """Raised at boot when the signing key cannot be loaded. Fatal."""


@dataclass(frozen=True)
class KeyStore:
    """Holds the HMAC secret and the access and refresh TTLs in seconds."""

    secret: bytes
    access_ttl: float
    refresh_ttl: float

    def __post_init__(self):
        if len(self.secret) < MIN_SECRET_BYTES:
            raise KeyStoreError(f"Signing secret must be at least {MIN_SECRET_BYTES} bytes")
        if self.access_ttl <= 0 or self.refresh_ttl <= 0:
            raise KeyStoreError("Token TTLs must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyStore":
        return cls(
            secret=settings.jwt_secret.encode("utf-8"),
            access_ttl=settings.access_ttl_seconds,
            refresh_ttl=settings.refresh_ttl_seconds,
        )

    def ttl(self, kind: str) -> float:
        if kind == "access":
            return self.access_ttl
        if kind == "refresh":
            return self.refresh_ttl
        raise ValueError(f"Unknown token kind: {kind!r}")

    def __repr__(self) -> str:
        return f"KeyStore(secret=<redacted>, access_ttl={self.access_ttl}, refresh_ttl={self.refresh_ttl})"
