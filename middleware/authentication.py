"""
Bearer token authentication middleware.

Attaches a `Principal` to `request.state.principal` when the request carries
a valid, unrevoked access token of an active user. Requests without a usable
token continue anonymously; the authorization middleware decides whether the
route needs more.
"""

import logfire

from typing import Callable, Iterable, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from middleware.error_handling import error_response
from schema.security import Principal
from security.denylist import Denylist
from security.errors import (
    AuthError,
    DenylistUnavailable,
    DirectoryUnavailable,
    InvalidToken,
    TokenRevoked,
    UserMissingOrInactive,
)
from security.helpers import extract_bearer
from security.tokens import TokenCodec
from services.directory import UserDirectory


# Handled by the auth service, which reads the tokens itself
DEFAULT_EXCLUDE_PATHS = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/refresh",
    "/api/auth/logout",
)


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: FastAPI,
        codec: TokenCodec,
        denylist: Denylist,
        directory: UserDirectory,
        exclude_paths: Optional[Iterable[str]] = DEFAULT_EXCLUDE_PATHS,
    ):
        super().__init__(app)
        self.codec = codec
        self.denylist = denylist
        self.directory = directory
        self.exclude_paths = set(exclude_paths) if exclude_paths else set()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.principal = None

        if request.url.path in self.exclude_paths:
            return await call_next(request)

        token = extract_bearer(request.headers.get("Authorization"))
        if token is None:
            return await call_next(request)

        try:
            request.state.principal = await self.authenticate(token)
        except AuthError as e:
            logfire.info(
                "Rejected bearer token on {path}: {reason}",
                path=request.url.path,
                reason=type(e).__name__,
            )
            return error_response(e.status_code, e.message, request.url.path, error=e.error)

        return await call_next(request)

    async def authenticate(self, token: str) -> Optional[Principal]:
        """Run the verification pipeline for one bearer token.

        Returns None when the token should be ignored and the request treated
        as anonymous.

        Raises:
            TokenRevoked: The token is on the denylist.
            UserMissingOrInactive: The subject is unknown, disabled, or the
                directory could not confirm it in time.
        """
        try:
            claims = self.codec.verify(token)
        except InvalidToken:
            return None

        # Refresh tokens are only accepted by the refresh endpoint
        if claims.typ != "access":
            return None

        try:
            if await self.denylist.is_revoked(token):
                raise TokenRevoked()
        except DenylistUnavailable:
            logfire.warning("Denylist unavailable, accepting token for subject {subject}", subject=claims.sub)

        try:
            entry = await self.directory.load(claims.sub)
        except DirectoryUnavailable:
            raise UserMissingOrInactive() from None

        if entry is None or not entry.active:
            raise UserMissingOrInactive()

        # Role comes from the token; a role change takes effect on the next login or refresh
        return Principal.from_claims(claims, active=entry.active)
