"""Signed bearer tokens carrying subject, email and canonical role claims.

Tokens are compact HS256 JWTs (three base64url segments). Minting always
stores the role in its `ROLE_` form; verification accepts either form and
hands back canonical claims, so the policy gate only ever compares
`ROLE_CUSTOMER`, `ROLE_ARTIST` or `ROLE_ADMIN`.
"""

import math
import time
import uuid

from jose import JWTError, jwt

from pydantic import ValidationError

from typing import Any, Callable, Mapping, Optional

from models.helpers import canonical_role
from schema.security import Claims, TokenKind
from security.errors import InvalidToken
from security.keystore import KeyStore


ALGORITHM = "HS256"
TOKEN_KINDS = ("access", "refresh")
RESERVED_CLAIMS = frozenset({"sub", "email", "role", "iat", "exp", "jti", "typ"})


class TokenCodec:
    """Encodes and verifies tokens. Pure: no I/O, only the injected clock."""

    def __init__(self, keystore: KeyStore, clock: Callable[[], float] = time.time):
        self._keystore = keystore
        self._clock = clock

    def mint(
        self,
        subject: str,
        email: str,
        role: str,
        kind: TokenKind = "access",
        extra_claims: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Create a signed token.

        Args:
            subject: User id, stored as `sub`.
            email: User email.
            role: Role with or without the `ROLE_` prefix.
            kind: `access` or `refresh`, selects the TTL.
            extra_claims: Additional claims. They can never replace the reserved ones.

        Raises:
            ValueError: If the role or kind is unknown.
        """
        if kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {kind!r}")
        role_claim = canonical_role(role)

        now = int(self._clock())
        ttl = max(1, int(self._keystore.ttl(kind)))

        payload = {k: v for k, v in (extra_claims or {}).items() if k not in RESERVED_CLAIMS}
        payload.update(
            {
                "sub": str(subject),
                "email": email,
                "role": role_claim,
                "iat": now,
                "exp": now + ttl,
                "jti": uuid.uuid4().hex,
                "typ": kind,
            }
        )
        return jwt.encode(payload, self._keystore.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Claims:
        """Check signature, expiry and required claims.

        Raises:
            InvalidToken: On any failure. No partial claims are ever returned.
        """
        if not token or not isinstance(token, str):
            raise InvalidToken()

        try:
            payload = jwt.decode(
                token,
                self._keystore.secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            raise InvalidToken() from e

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp <= self._clock():
            raise InvalidToken("Token has expired")

        try:
            return Claims(
                sub=payload.get("sub"),
                email=payload.get("email"),
                role=canonical_role(payload.get("role")),
                iat=payload.get("iat"),
                exp=exp,
                jti=payload.get("jti"),
                typ=payload.get("typ", "access"),
            )
        except (ValidationError, ValueError) as e:
            raise InvalidToken() from e

    def remaining_ttl(self, claims: Claims) -> int:
        """Whole seconds until the token expires, never less than one."""
        return max(1, math.ceil(claims.exp - self._clock()))
