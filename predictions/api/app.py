"""
FastAPI application for the Predictions League.

This is the HTTP API the frontend talks to. Run it with:

    uvicorn predictions.api.app:app --port 8080
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from predictions.api.errors import register_exception_handlers
from predictions.api.leagues import router as leagues_router
from predictions.api.oauth import router as oauth_router
from predictions.api.profile import router as profile_router
from predictions.auth.jwt import TokenCodec
from predictions.auth.middleware import RequestAuthenticator
from predictions.auth.routes import router as auth_router
from predictions.auth.sessions import SessionIssuer
from predictions.config import Settings, get_settings
from predictions.integrations.email import EmailService
from predictions.integrations.oauth import GoogleOAuth
from predictions.integrations.sentry import init_sentry
from predictions.services.accounts import AccountService
from predictions.services.leagues import LeagueService
from predictions.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")
    if not app.state.email.is_configured:
        logger.warning("AWS SES not configured - emails will only be logged")

    logger.info(f"Predictions API starting in {settings.environment} mode")

    yield

    logger.info("Predictions API shutting down")


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
    email: EmailService | None = None,
    oauth: GoogleOAuth | None = None,
) -> FastAPI:
    """
    Build the API with its services.

    Everything defaults to the configured settings and in-memory storage;
    tests pass their own.
    """
    settings = settings or get_settings()
    storage = storage or create_local_storage()
    email = email or EmailService(settings)

    app = FastAPI(
        title="Predictions League API",
        description="Accounts, sessions and leagues for the Predictions League",
        version="0.1.0",
        lifespan=lifespan,
    )

    codec = TokenCodec.from_settings(settings)
    app.state.settings = settings
    app.state.storage = storage
    app.state.email = email
    app.state.sessions = SessionIssuer(codec, storage.users, settings)
    app.state.accounts = AccountService(storage, email, settings, oauth)
    app.state.leagues = LeagueService(storage, settings)

    # Added last runs first: CORS wraps the authenticator
    app.add_middleware(RequestAuthenticator, codec=codec, users=storage.users)
    origins = list(dict.fromkeys([settings.frontend_url, *settings.cors_origins_list]))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(leagues_router)
    app.include_router(profile_router)
    app.include_router(oauth_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "predictions-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
