"""
League routes.

Every endpoint here needs a logged-in user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from predictions.api.dependencies import get_league_service
from predictions.auth.context import AuthContext
from predictions.auth.policies import require_auth
from predictions.core.models import LeagueStanding, LeagueSummary, Publicity
from predictions.services.leagues import LeagueService

router = APIRouter(prefix="/leagues", tags=["leagues"])


class CreateLeagueRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    publicity: Publicity


@router.get("/{league_uuid}", response_model=LeagueStanding)
async def get_league_standings(
    league_uuid: str,
    ctx: AuthContext = Depends(require_auth()),
    leagues: LeagueService = Depends(get_league_service),
):
    return await leagues.standings_for(league_uuid)


@router.get("", response_model=list[LeagueSummary])
async def get_my_leagues(
    ctx: AuthContext = Depends(require_auth()),
    leagues: LeagueService = Depends(get_league_service),
):
    """Leagues the current user belongs to."""
    return await leagues.leagues_for(ctx.email)


@router.post("", response_model=LeagueSummary, status_code=status.HTTP_201_CREATED)
async def create_league(
    data: CreateLeagueRequest,
    ctx: AuthContext = Depends(require_auth()),
    leagues: LeagueService = Depends(get_league_service),
):
    """Create a league with the caller as its first member."""
    return await leagues.create(ctx.email, data.name, data.publicity)


@router.post("/public/{league_uuid}/join")
async def join_public_league(
    league_uuid: str,
    ctx: AuthContext = Depends(require_auth()),
    leagues: LeagueService = Depends(get_league_service),
):
    name = await leagues.join_public(ctx.email, league_uuid)
    return {"message": f"Successfully joined {name} league"}


@router.post("/private/{code}/join")
async def join_private_league(
    code: str,
    ctx: AuthContext = Depends(require_auth()),
    leagues: LeagueService = Depends(get_league_service),
):
    name = await leagues.join_private(ctx.email, code)
    return {"message": f"Successfully joined {name} league"}
