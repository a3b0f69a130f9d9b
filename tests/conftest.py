"""Shared fixtures: test settings, fresh in-memory storage, services and an API client."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from predictions.api.app import create_app
from predictions.auth.jwt import TokenCodec, hash_password
from predictions.auth.sessions import SessionIssuer
from predictions.config import Settings
from predictions.core.models import User
from predictions.integrations.email import EmailService
from predictions.integrations.oauth import GoogleOAuth
from predictions.services.accounts import AccountService
from predictions.services.leagues import LeagueService
from predictions.storage import create_local_storage

TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"
PASSWORD = "correct-horse-battery"


class RecordingEmailService(EmailService):
    """Keeps every email instead of sending it."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    async def send(self, template, to, data=None):
        self.sent.append((template, to, data or {}))
        return True

    def templates_sent_to(self, email):
        return [template for template, to, _ in self.sent if to == email]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        debug=False,
        jwt_secret_key=TEST_SECRET,
        aws_access_key_id="",
        aws_secret_access_key="",
        aws_ses_from_email="",
        sentry_dsn="",
    )


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def email(settings):
    return RecordingEmailService(settings)


@pytest.fixture
def codec(settings):
    return TokenCodec.from_settings(settings)


@pytest.fixture
def sessions(codec, storage, settings):
    return SessionIssuer(codec, storage.users, settings)


@pytest.fixture
def accounts(storage, email, settings):
    return AccountService(storage, email, settings)


@pytest.fixture
def leagues(storage, settings):
    return LeagueService(storage, settings)


@pytest.fixture
def make_user(storage):
    """Save a user straight into storage."""

    def _make_user(email, first_name="Player", verified=True, password=PASSWORD, **fields):
        user = User(
            email=email,
            password_hash=hash_password(password) if password else "",
            account_verified=verified,
            first_name=first_name,
            **fields,
        )
        asyncio.run(storage.users.save(user))
        return user

    return _make_user


@pytest.fixture
def provider_profiles():
    """Google userinfo answers by access token; tests add entries."""
    return {}


@pytest.fixture
def google(provider_profiles):
    def userinfo(request):
        token = request.headers["Authorization"].removeprefix("Bearer ")
        if token not in provider_profiles:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json=provider_profiles[token])

    return GoogleOAuth(transport=httpx.MockTransport(userinfo))


@pytest.fixture
def app(settings, storage, email, google):
    return create_app(settings=settings, storage=storage, email=email, oauth=google)


@pytest.fixture
def client(app):
    # https so the Secure session cookies are sent back
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
