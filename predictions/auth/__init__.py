"""
Authentication - stateless tokens and per-request identity.

- jwt: TokenCodec (issue/parse access and refresh tokens), password hashing
- sessions: SessionIssuer (login, refresh, logout) and cookie transport
- middleware: RequestAuthenticator, attaches an AuthContext to every request
- policies: require_auth(), the dependency routes use to demand a user

The router lives in ``predictions.auth.routes``.
"""

from predictions.auth.context import AuthContext, get_auth_context
from predictions.auth.jwt import (
    SessionPair,
    TokenClaims,
    TokenClass,
    TokenCodec,
    hash_password,
    verify_password,
)
from predictions.auth.middleware import RequestAuthenticator, resolve_identity
from predictions.auth.policies import Policy, require, require_auth
from predictions.auth.sessions import SessionIssuer, apply_session_cookies

__all__ = [
    # Main interface
    "require",
    "require_auth",
    "AuthContext",
    "get_auth_context",
    "Policy",
    # Tokens
    "TokenCodec",
    "TokenClaims",
    "TokenClass",
    "SessionPair",
    "hash_password",
    "verify_password",
    # Sessions
    "SessionIssuer",
    "apply_session_cookies",
    # Middleware
    "RequestAuthenticator",
    "resolve_identity",
]
