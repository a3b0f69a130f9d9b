# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register        - Create account (unverified)
#   POST /auth/send-verify-otp - Email a verification code
#   POST /auth/verify-otp      - Verify account with the code
#   POST /auth/login           - Set access + refresh cookies
#   POST /auth/refresh         - New cookies from the refresh cookie
#   POST /auth/logout          - Overwrite both cookies with expired ones
#
# All of these are public paths: none of them needs an existing identity.
#
# =============================================================================

from fastapi import APIRouter, Cookie, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field

from predictions.api.dependencies import (
    get_account_service,
    get_app_settings,
    get_session_issuer,
)
from predictions.auth.sessions import REFRESH_COOKIE, SessionIssuer, apply_session_cookies
from predictions.config import Settings
from predictions.core.models import RegistrationRequest, RegistrationResponse
from predictions.services.accounts import AccountService

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class OtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1, max_length=12)


# =============================================================================
# Registration & Verification
# =============================================================================

@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegistrationRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Create a new, unverified account."""
    return await accounts.register(data)


@router.post("/send-verify-otp")
async def send_verify_otp(
    data: EmailRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Email a fresh verification code, replacing any earlier one."""
    await accounts.send_verify_otp(data.email)
    return {"message": "VerifyOTP sent successfully"}


@router.post("/verify-otp")
async def verify_otp(
    data: OtpRequest,
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.verify_otp(data.email, data.otp)
    return {"message": "Account verified successfully"}


# =============================================================================
# Sessions
# =============================================================================

@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_app_settings),
):
    """
    Check credentials and set the session cookies.

    Unknown email and wrong password give the same error.
    """
    pair = await sessions.login(data.email, data.password)
    apply_session_cookies(response, pair, settings)
    return {"message": "Login successful"}


@router.post("/refresh")
async def refresh(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_app_settings),
):
    """Swap the refresh cookie for a brand new pair."""
    pair = await sessions.refresh(refresh_token)
    apply_session_cookies(response, pair, settings)
    return {"message": "Refresh successful"}


@router.post("/logout")
async def logout(
    response: Response,
    sessions: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_app_settings),
):
    """
    Replace both cookies with empty, zero-lifetime ones.

    Tokens are not revoked server-side; a copied token stays valid until it
    expires.
    """
    apply_session_cookies(response, sessions.logout(), settings)
    return {"message": "Logout successful"}
