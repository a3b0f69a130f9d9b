"""
Route dependencies.

Services are built once per app in ``create_app`` and kept on ``app.state``;
these functions hand them to route handlers through ``Depends``.
"""

from __future__ import annotations

from fastapi import Request

from predictions.auth.sessions import SessionIssuer
from predictions.config import Settings
from predictions.services.accounts import AccountService
from predictions.services.leagues import LeagueService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.sessions


def get_account_service(request: Request) -> AccountService:
    return request.app.state.accounts


def get_league_service(request: Request) -> LeagueService:
    return request.app.state.leagues
