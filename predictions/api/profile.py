"""Profile routes for the logged-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from predictions.api.dependencies import get_account_service
from predictions.auth.context import AuthContext
from predictions.auth.policies import require_auth
from predictions.services.accounts import AccountService

router = APIRouter(prefix="/profile", tags=["profile"])


class PasswordChangeRequest(BaseModel):
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


@router.get("/home")
async def home(
    ctx: AuthContext = Depends(require_auth()),
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.get_profile(ctx.email)
    return {
        "message": f"Viewing the HomePage of {user.email}",
        "first_name": user.first_name,
        "username": user.username,
        "favourite_team": user.favourite_team,
        "total_points": user.total_points,
    }


@router.post("/change-password")
async def change_password(
    data: PasswordChangeRequest,
    ctx: AuthContext = Depends(require_auth()),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.change_password(ctx.email, data.old_password, data.new_password)
    return {"message": "Password changed successfully"}


@router.post("/reset-password")
async def reset_password(
    ctx: AuthContext = Depends(require_auth()),
    accounts: AccountService = Depends(get_account_service),
):
    """Email the caller a password reset notice."""
    await accounts.request_password_reset(ctx.email)
    return {"message": "ResetPassword Email sent successfully"}
