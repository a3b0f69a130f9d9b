# =============================================================================
# Signed Identity Tokens
# =============================================================================
#
# This module provides:
#   - TokenCodec: issue / parse / expiry checks for access + refresh JWTs
#   - SessionPair: the two tokens handed out together at login or refresh
#   - Password hashing (salted PBKDF2)
#
# Access tokens live 5 minutes, refresh tokens 14 days. Both are HS256 JWTs
# carrying the user's email as subject.
#
# =============================================================================

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum

import jwt
from pydantic import BaseModel

from predictions.config import Settings, get_settings
from predictions.core.errors import TokenInvalid
from predictions.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================


class TokenClass(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenClaims(BaseModel):
    """Verified JWT claims."""

    sub: str  # user email
    iat: datetime
    exp: datetime
    type: TokenClass
    jti: str = ""

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.exp < (now or utc_now())


class SessionPair(BaseModel):
    """Access and refresh token issued together."""

    access_token: str
    refresh_token: str
    access_max_age: int  # seconds
    refresh_max_age: int  # seconds

    @classmethod
    def cleared(cls) -> SessionPair:
        """Zero-lifetime replacement used on logout."""
        return cls(access_token="", refresh_token="", access_max_age=0, refresh_max_age=0)


# =============================================================================
# Password Hashing
# =============================================================================

PBKDF2_ITERATIONS = 210_000


def hash_password(password: str) -> str:
    """
    Hash a password using salted PBKDF2-SHA256.

    Returns: "pbkdf2_sha256$<iterations>$<salt>$<hash>"
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
    )
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored hash. Empty hashes never match."""
    try:
        algorithm, iterations, salt, stored = password_hash.split("$")
        if algorithm != "pbkdf2_sha256":
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            int(iterations),
        )
        return secrets.compare_digest(digest.hex(), stored)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Token Codec
# =============================================================================


class TokenCodec:
    """
    Creates and reads signed identity tokens.

    Holds nothing but the signing key and lifetimes, so one instance can be
    shared by every request.
    """

    REQUIRED_CLAIMS = ["sub", "iat", "exp", "type"]

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_lifetime: timedelta = timedelta(minutes=5),
        refresh_lifetime: timedelta = timedelta(days=14),
    ):
        if not secret_key:
            raise ValueError("JWT secret key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> TokenCodec:
        settings = settings or get_settings()
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            access_lifetime=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_lifetime=timedelta(days=settings.jwt_refresh_token_expire_days),
        )

    def lifetime(self, token_class: TokenClass) -> timedelta:
        if token_class == TokenClass.ACCESS:
            return self.access_lifetime
        return self.refresh_lifetime

    # -------------------------------------------------------------------------
    # Issuing
    # -------------------------------------------------------------------------

    def issue(
        self,
        subject: str,
        token_class: TokenClass,
        now: datetime | None = None,
    ) -> str:
        """Create a signed token for ``subject`` valid from ``now`` for the class lifetime."""
        issued_at = (now or utc_now()).replace(microsecond=0)
        payload = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.lifetime(token_class),
            "type": token_class.value,
            "jti": generate_id("tok" if token_class == TokenClass.ACCESS else "rtok"),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def issue_pair(self, subject: str, now: datetime | None = None) -> SessionPair:
        """Create both access and refresh tokens."""
        return SessionPair(
            access_token=self.issue(subject, TokenClass.ACCESS, now),
            refresh_token=self.issue(subject, TokenClass.REFRESH, now),
            access_max_age=int(self.access_lifetime.total_seconds()),
            refresh_max_age=int(self.refresh_lifetime.total_seconds()),
        )

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def parse(self, token: str) -> TokenClaims:
        """
        Verify the signature and return the claims.

        Expiry is deliberately not enforced here; use ``is_expired`` or
        ``TokenClaims.is_expired``.

        Raises:
            TokenInvalid: bad signature, unsupported algorithm, malformed
                token or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": self.REQUIRED_CLAIMS,
                },
            )
            return TokenClaims(
                sub=payload["sub"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                type=TokenClass(payload["type"]),
                jti=payload.get("jti", ""),
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalid() from e
        except (TypeError, ValueError) as e:
            # Claims present but of the wrong shape
            raise TokenInvalid() from e

    def is_expired(self, token: str, now: datetime | None = None) -> bool:
        """
        Compare the token's ``exp`` claim with now.

        Does not check the signature; callers parse first. A token whose
        expiry cannot be read counts as expired.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
            expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            return True
        return expires < (now or utc_now())

    def subject_of(self, token: str) -> str:
        """The verified subject (email) of a token."""
        return self.parse(token).sub
