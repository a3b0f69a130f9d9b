"""
Tests for per-request identity: resolve_identity and the RequestAuthenticator
middleware as seen through the API.
"""

import asyncio
from datetime import timedelta

import pytest

from predictions.auth.jwt import TokenClass, TokenCodec
from predictions.auth.middleware import is_public_path, resolve_identity
from predictions.core.utils import utc_now


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# resolve_identity
# =============================================================================


class TestResolveIdentity:
    def test_valid_access_token(self, codec, storage, make_user):
        user = make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.ACCESS)

        ctx = asyncio.run(resolve_identity(token, codec, storage.users))

        assert ctx.is_authenticated
        assert ctx.email == "ana@example.com"
        assert ctx.user_id == user.id

    def test_refresh_token_is_anonymous(self, codec, storage, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.REFRESH)

        ctx = asyncio.run(resolve_identity(token, codec, storage.users))

        assert ctx.is_anonymous

    def test_expired_is_anonymous(self, codec, storage, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.ACCESS, utc_now() - timedelta(minutes=6))

        ctx = asyncio.run(resolve_identity(token, codec, storage.users))

        assert ctx.is_anonymous

    def test_unknown_subject_is_anonymous(self, codec, storage):
        token = codec.issue("ghost@example.com", TokenClass.ACCESS)

        ctx = asyncio.run(resolve_identity(token, codec, storage.users))

        assert ctx.is_anonymous

    def test_bad_signature_is_anonymous(self, codec, storage, make_user):
        make_user("ana@example.com")
        other = TokenCodec("another-secret-key-long-enough-for-hs256-signing")
        token = other.issue("ana@example.com", TokenClass.ACCESS)

        ctx = asyncio.run(resolve_identity(token, codec, storage.users))

        assert ctx.is_anonymous


@pytest.mark.parametrize(
    "path,public",
    [
        ("/auth/login", True),
        ("/auth/refresh", True),
        ("/health", True),
        ("/docs/oauth2-redirect", True),
        ("/v3/api-docs/swagger-config", True),
        ("/auth/logout", False),
        ("/leagues", False),
        ("/profile/home", False),
    ],
)
def test_public_paths(path, public):
    assert is_public_path(path) is public


# =============================================================================
# Through the API
# =============================================================================


class TestRequestAuthenticator:
    def test_no_token(self, client):
        response = client.get("/leagues")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    def test_bearer_header(self, client, codec, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.ACCESS)

        response = client.get("/leagues", headers=bearer(token))

        assert response.status_code == 200
        assert response.json() == []

    def test_access_cookie(self, client, codec, make_user):
        make_user("ana@example.com")
        client.cookies.set("access", codec.issue("ana@example.com", TokenClass.ACCESS))

        response = client.get("/profile/home")

        assert response.status_code == 200
        assert response.json()["message"] == "Viewing the HomePage of ana@example.com"

    def test_bearer_wins_over_cookie(self, client, codec, make_user):
        make_user("ana@example.com", first_name="Ana")
        make_user("ben@example.com", first_name="Ben")
        client.cookies.set("access", codec.issue("ana@example.com", TokenClass.ACCESS))

        response = client.get(
            "/profile/home",
            headers=bearer(codec.issue("ben@example.com", TokenClass.ACCESS)),
        )

        assert response.json()["first_name"] == "Ben"

    def test_refresh_token_cannot_authorize(self, client, codec, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.REFRESH)

        assert client.get("/leagues", headers=bearer(token)).status_code == 401

    def test_expired_token(self, client, codec, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.ACCESS, utc_now() - timedelta(minutes=10))

        assert client.get("/leagues", headers=bearer(token)).status_code == 401

    def test_garbage_token(self, client):
        assert client.get("/leagues", headers=bearer("garbage")).status_code == 401

    def test_identity_does_not_leak_between_requests(self, client, codec, make_user):
        make_user("ana@example.com")
        token = codec.issue("ana@example.com", TokenClass.ACCESS)

        assert client.get("/leagues", headers=bearer(token)).status_code == 200
        assert client.get("/leagues").status_code == 401

    def test_public_path_ignores_broken_token(self, client):
        response = client.get("/health", headers=bearer("garbage"))

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
