"""Registration, login, refresh, logout and password changes.

The service issues tokens through the codec, checks the denylist on refresh
and inserts into it on logout. Handlers translate its exceptions with the
global error handler, except where the auth endpoints answer with their own
`{success: false, message}` body.
"""

import asyncio
import logfire

from dataclasses import dataclass
from typing import Optional

from models.helpers import Role
from schema.security import Claims, Principal
from schema.users import UserInDB
from security.denylist import Denylist
from security.errors import (
    DenylistUnavailable,
    EmailTaken,
    InvalidCredentials,
    InvalidToken,
    ResourceNotFound,
    RevocationUnavailable,
    TokenRevoked,
    ValidationFailed,
    WeakPassword,
)
from security.passwords import PasswordHasher, password_violations
from security.tokens import TokenCodec


SELF_REGISTRATION_ROLES = frozenset({Role.CUSTOMER, Role.ARTIST})

lost_revocation_counter = logfire.metric_counter(
    "revocation_lost",
    unit="1",
    description="Tokens that could not be written to the denylist on logout",
)


@dataclass(frozen=True)
class AuthResult:
    user: UserInDB
    access_token: str
    refresh_token: str
    redirect_url: str


def redirect_url_for(role) -> str:
    """`/dashboard/<role>` for the known roles, `/` otherwise."""
    try:
        return f"/dashboard/{Role.parse(role).value.lower()}"
    except ValueError:
        return "/"


class AuthService:
    def __init__(self, store, codec: TokenCodec, denylist: Denylist, hasher: PasswordHasher):
        self.store = store
        self.codec = codec
        self.denylist = denylist
        self.hasher = hasher

    def _issue(self, user: UserInDB) -> AuthResult:
        return AuthResult(
            user=user,
            access_token=self.codec.mint(user.id, user.email, user.role, "access"),
            refresh_token=self.codec.mint(user.id, user.email, user.role, "refresh"),
            redirect_url=redirect_url_for(user.role),
        )

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Optional[str] = None,
    ) -> AuthResult:
        """Create an account and sign it in.

        Raises:
            ValidationFailed: Unknown role, or an attempt to self-register as admin.
            WeakPassword: Every password rule the password breaks.
            EmailTaken: The email is already registered.
        """
        with logfire.span("Registering new user"):
            try:
                requested = Role.parse(role) if role else Role.CUSTOMER
            except ValueError:
                raise ValidationFailed({"role": "Role must be one of CUSTOMER, ARTIST"}) from None
            if requested not in SELF_REGISTRATION_ROLES:
                raise ValidationFailed({"role": "Administrators cannot self-register"})

            violations = password_violations(password)
            if violations:
                raise WeakPassword(violations)

            if await self.store.get_user_by_email(email) is not None:
                logfire.info("Registration rejected: email already registered")
                raise EmailTaken()

            password_hash = await self.hasher.hash(password)
            user = await self.store.create_user(email, password_hash, first_name, last_name, requested)

            logfire.info("Registered user {user_id} as {role}", user_id=user.id, role=user.role.value)
            return self._issue(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate by email and password.

        The unknown-user branch runs a dummy bcrypt verification so both
        failure branches take the same time.

        Raises:
            InvalidCredentials: Unknown user, wrong password or inactive account.
        """
        with logfire.span("User login"):
            user = await self.store.get_user_by_email(email)
            if user is None:
                await self.hasher.dummy_verify()
                logfire.info("Login failed: unknown user")
                raise InvalidCredentials()

            if not await self.hasher.verify(password, user.password):
                logfire.info("Login failed for user {user_id}: wrong password", user_id=user.id)
                raise InvalidCredentials()

            if not user.active:
                logfire.info("Login refused for inactive user {user_id}", user_id=user.id)
                raise InvalidCredentials()

            logfire.info("User {user_id} logged in successfully", user_id=user.id)
            return self._issue(user)

    async def refresh(self, refresh_token: Optional[str]) -> str:
        """Mint a new access token with the subject, email and role of a refresh token.

        The refresh token is not rotated and stays valid until it expires or is revoked.

        Raises:
            InvalidToken: Missing, invalid, expired or not a refresh token.
            TokenRevoked: The refresh token was revoked by a logout.
        """
        with logfire.span("Refreshing access token"):
            claims = self.codec.verify(refresh_token or "")
            if claims.typ != "refresh":
                raise InvalidToken("Invalid refresh token")

            try:
                if await self.denylist.is_revoked(refresh_token):
                    logfire.warning("Revoked refresh token presented for subject {subject}", subject=claims.sub)
                    raise TokenRevoked()
            except DenylistUnavailable:
                logfire.warning("Denylist unavailable during refresh for subject {subject}", subject=claims.sub)

            return self.codec.mint(claims.sub, claims.email, claims.role, "access")

    async def logout(self, access_token: Optional[str], refresh_token: Optional[str]) -> int:
        """Revoke every verifiable token passed in. Never fails.

        Returns:
            The number of tokens written to the denylist.
        """
        revoked = 0
        with logfire.span("User logout"):
            for token in (access_token, refresh_token):
                claims = self._claims_or_none(token)
                if claims is None:
                    continue
                try:
                    await self.denylist.revoke(token, self.codec.remaining_ttl(claims))
                    revoked += 1
                except RevocationUnavailable:
                    self._report_lost_revocation(claims, "unavailable")
                except asyncio.CancelledError:
                    self._report_lost_revocation(claims, "cancelled")
                    raise
            logfire.info("Logout completed, {revoked} token(s) revoked", revoked=revoked)
        return revoked

    @staticmethod
    def _report_lost_revocation(claims: Claims, reason: str) -> None:
        lost_revocation_counter.add(1, {"kind": claims.typ, "reason": reason})
        logfire.error(
            "Could not revoke {kind} token of subject {subject}: {reason}",
            kind=claims.typ,
            subject=claims.sub,
            reason=reason,
        )

    def _claims_or_none(self, token: Optional[str]) -> Optional[Claims]:
        if not token:
            return None
        try:
            return self.codec.verify(token)
        except InvalidToken:
            return None

    async def change_password(self, subject: str, current_password: str, new_password: str) -> None:
        """Raises:
            InvalidCredentials: The current password does not match.
            WeakPassword: The new password breaks the password policy.
        """
        with logfire.span("Changing password"):
            user = await self.store.get_user(subject)
            if user is None:
                raise ResourceNotFound("User not found")

            if not await self.hasher.verify(current_password, user.password):
                logfire.info("Password change rejected for user {user_id}", user_id=subject)
                raise InvalidCredentials("Current password is incorrect")

            violations = password_violations(new_password)
            if violations:
                raise WeakPassword(violations, field="newPassword")

            await self.store.update_user(subject, password=await self.hasher.hash(new_password))
            logfire.info("Password changed for user {user_id}", user_id=subject)

    async def profile(self, principal: Principal) -> UserInDB:
        user = await self.store.get_user(principal.subject)
        if user is None:
            raise ResourceNotFound("User not found")
        return user
