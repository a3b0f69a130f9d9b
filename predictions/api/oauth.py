"""
OAuth routes.

The Google handshake is done by an OAuth proxy in front of the API, which
calls ``/oauth2/login`` with the signed-in user's email and provider access
token in headers. We issue our own session cookies and redirect back to the
frontend: first-time users go to the callback page to finish their profile.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from predictions.api.dependencies import get_account_service, get_app_settings, get_session_issuer
from predictions.auth.context import AuthContext
from predictions.auth.policies import require_auth
from predictions.auth.sessions import SessionIssuer, apply_session_cookies
from predictions.config import Settings
from predictions.core.models import Team
from predictions.services.accounts import AccountService

router = APIRouter(prefix="/oauth2", tags=["oauth"])


class FinishRegistrationRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    favourite_team: Team | None = None


@router.get("/login")
async def oauth_login(
    access_token: str = Header(alias="X-Forwarded-Access-Token"),
    email: str = Header(alias="X-Forwarded-Email"),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_app_settings),
):
    user, created = await accounts.oauth_sign_in(email, access_token)

    target = "/auth/oauth/callback" if created else "/dashboard"
    response = RedirectResponse(url=f"{settings.frontend_url}{target}", status_code=302)
    apply_session_cookies(response, sessions.issue_for(user.email), settings)
    return response


@router.post("/finish-registration")
async def finish_registration(
    data: FinishRegistrationRequest,
    ctx: AuthContext = Depends(require_auth()),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.finish_registration(ctx.email, data.username, data.favourite_team)
    return {"message": "Registration successful"}
