"""
Request authenticator.

Raw ASGI middleware that runs before routing on every HTTP request and
attaches an ``AuthContext`` to that request's scope:

1. Public paths get an anonymous context without looking for a token.
2. Otherwise the token comes from ``Authorization: Bearer ...`` or, failing
   that, the ``access`` cookie.
3. A valid, unexpired access token whose subject still exists yields an
   authenticated context. Anything else yields an anonymous one.

The middleware never rejects a request. Routes that need a user depend on
``require_auth()``, which turns an anonymous context into a 401.
"""

from __future__ import annotations

import logging

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from predictions.auth.context import AuthContext, set_auth_context
from predictions.auth.jwt import TokenClass, TokenCodec
from predictions.auth.sessions import ACCESS_COOKIE
from predictions.core.errors import TokenInvalid
from predictions.storage.base import UserStore

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({
    "/auth/register",
    "/auth/login",
    "/auth/send-verify-otp",
    "/auth/verify-otp",
    "/auth/refresh",
    "/oauth2/login",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
})
PUBLIC_PREFIXES = ("/docs/", "/swagger-ui/", "/v3/api-docs")


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def extract_token(connection: HTTPConnection) -> str | None:
    """Bearer header first, then the access cookie."""
    authorization = connection.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return connection.cookies.get(ACCESS_COOKIE) or None


async def resolve_identity(token: str, codec: TokenCodec, users: UserStore) -> AuthContext:
    """
    Turn a raw token into an identity, or anonymous if it doesn't check out.

    Only access tokens are accepted; refresh tokens are for /auth/refresh.
    """
    try:
        claims = codec.parse(token)
    except TokenInvalid:
        logger.debug("Ignoring token with invalid signature or format")
        return AuthContext.anonymous()

    if claims.type != TokenClass.ACCESS:
        logger.debug("Ignoring non-access token presented for a request")
        return AuthContext.anonymous()
    if claims.is_expired():
        logger.debug("Ignoring expired access token")
        return AuthContext.anonymous()

    user = await users.find_by_key(claims.sub)
    if user is None or user.email != claims.sub:
        logger.debug("Ignoring token for unknown subject")
        return AuthContext.anonymous()

    return AuthContext(email=user.email, user_id=user.id)


class RequestAuthenticator:
    """Attaches the caller's identity to each request. Holds no per-request state."""

    def __init__(self, app: ASGIApp, codec: TokenCodec, users: UserStore):
        self.app = app
        self.codec = codec
        self.users = users

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        ctx = AuthContext.anonymous()
        if not is_public_path(scope.get("path") or ""):
            token = extract_token(HTTPConnection(scope))
            if token:
                ctx = await resolve_identity(token, self.codec, self.users)

        # Always overwrite, so nothing from a previous hop survives
        set_auth_context(scope, ctx)
        await self.app(scope, receive, send)
