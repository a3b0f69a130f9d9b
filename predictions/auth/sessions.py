"""
Session issuing - login, refresh, logout.

Turns credentials (or a refresh token) into a fresh ``SessionPair`` and
writes the pair to the response as cookies. Nothing is stored server-side:
logout only hands the browser zero-lifetime replacements, so a token copied
elsewhere keeps working until it expires on its own.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from functools import lru_cache

from fastapi import Response

from predictions.auth.jwt import (
    SessionPair,
    TokenClass,
    TokenCodec,
    hash_password,
    verify_password,
)
from predictions.config import Settings, get_settings
from predictions.core.errors import (
    AccountNotVerified,
    AuthenticationFailure,
    MissingToken,
    TokenExpired,
    TokenInvalid,
)
from predictions.storage.base import UserStore

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "access"
REFRESH_COOKIE = "refresh"


@lru_cache
def _dummy_hash() -> str:
    # Compared against when the email is unknown so both failure paths cost the same
    return hash_password(secrets.token_urlsafe(16))


def _check_password(password: str, stored_hash: str | None) -> bool:
    """Verify against the stored hash, or the dummy one when there is no user."""
    if stored_hash is None:
        verify_password(password, _dummy_hash())
        return False
    return verify_password(password, stored_hash)


class SessionIssuer:
    """Credential-to-token and token-to-token exchanges."""

    def __init__(
        self,
        codec: TokenCodec,
        users: UserStore,
        settings: Settings | None = None,
    ):
        self.codec = codec
        self.users = users
        self.settings = settings or get_settings()

    async def login(self, email: str, password: str) -> SessionPair:
        """
        Check the password, then the verification flag, then issue a pair.

        Raises:
            AuthenticationFailure: unknown email or wrong password
            AccountNotVerified: credentials fine but the account is unverified
        """
        user = await self.users.find_by_key(email)
        stored_hash = user.password_hash if user is not None else None
        # PBKDF2 runs in a worker thread
        matched = await asyncio.to_thread(_check_password, password, stored_hash)
        if user is None or not matched:
            raise AuthenticationFailure()

        if not user.account_verified:
            raise AccountNotVerified()

        logger.info(f"Login for {user.email}")
        return self.codec.issue_pair(user.email)

    async def refresh(self, refresh_token: str | None) -> SessionPair:
        """
        Mint a new pair from a refresh token.

        Raises:
            MissingToken: no token supplied
            TokenInvalid: bad signature, malformed, or not a refresh token
            TokenExpired: the refresh token has expired
        """
        if not refresh_token:
            raise MissingToken()

        claims = self.codec.parse(refresh_token)
        if claims.type != TokenClass.REFRESH:
            raise TokenInvalid()
        if claims.is_expired():
            raise TokenExpired()

        if self.settings.refresh_rechecks_account:
            user = await self.users.find_by_key(claims.sub)
            if user is None:
                raise TokenInvalid()
            if not user.account_verified:
                raise AccountNotVerified()

        return self.codec.issue_pair(claims.sub)

    def logout(self) -> SessionPair:
        """Zero-lifetime pair; overwrites the browser's cookies."""
        return SessionPair.cleared()

    def issue_for(self, email: str) -> SessionPair:
        """Issue a pair for an identity established elsewhere (OAuth)."""
        return self.codec.issue_pair(email)


def apply_session_cookies(
    response: Response,
    pair: SessionPair,
    settings: Settings | None = None,
) -> None:
    """Write both tokens as HttpOnly cookies on ``response``."""
    settings = settings or get_settings()
    for name, value, max_age in (
        (ACCESS_COOKIE, pair.access_token, pair.access_max_age),
        (REFRESH_COOKIE, pair.refresh_token, pair.refresh_max_age),
    ):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            path="/",
            secure=settings.cookie_secure,
            httponly=True,
            samesite=settings.cookie_samesite,
        )
