"""
Core data models for the predictions backend.

These models represent the stored entities (users, leagues, one-time codes)
and the summaries handed back to clients.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field

from predictions.core.utils import generate_uuid, utc_now


# =============================================================================
# Enums
# =============================================================================


class Publicity(str, Enum):
    """Whether a league is joined by its UUID or by a code."""

    PUBLIC = "PUBLIC"  # Joinable by anyone who knows the UUID
    PRIVATE = "PRIVATE"  # Joinable only with the 6-character code


class Team(str, Enum):
    """Clubs a user can pick as their favourite."""

    ARSENAL = "ARSENAL"
    CHELSEA = "CHELSEA"
    LIVERPOOL = "LIVERPOOL"
    MANCITY = "MANCITY"
    MANUTD = "MANUTD"
    SPURS = "SPURS"


# =============================================================================
# User
# =============================================================================


class User(BaseModel):
    """
    A registered player.

    Keyed by email in the user store. ``password_hash`` is empty for
    accounts created through OAuth.
    """

    id: str = Field(default_factory=generate_uuid)
    email: str
    password_hash: str = ""
    account_verified: bool = False

    # Profile
    first_name: str = ""
    last_name: str = ""
    username: str | None = None
    favourite_team: Team | None = None

    # Scoring (computed elsewhere, only stored here)
    total_points: int = 0

    # Leagues this user belongs to (league UUIDs)
    league_ids: set[str] = Field(default_factory=set)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# League
# =============================================================================


class League(BaseModel):
    """
    A prediction league.

    ``code`` is only set for private leagues. ``member_emails`` and each
    member's ``User.league_ids`` are two views of the same relation and are
    always written together.
    """

    uuid: str = Field(default_factory=generate_uuid)
    name: str
    publicity: Publicity
    code: str | None = None
    member_emails: set[str] = Field(default_factory=set)
    created_at: datetime = Field(default_factory=utc_now)

    def has_member(self, email: str) -> bool:
        return email in self.member_emails


# =============================================================================
# One-time codes
# =============================================================================


class OtpRecord(BaseModel):
    """Account verification code. One per user; resending overwrites it."""

    user_id: str
    value: str
    expires_at: datetime
    failed_attempts: int = 0

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) > self.expires_at


# =============================================================================
# Responses
# =============================================================================


class LeagueSummary(BaseModel):
    uuid: str
    name: str
    publicity: Publicity
    number_of_members: int

    @classmethod
    def from_league(cls, league: League) -> LeagueSummary:
        return cls(
            uuid=league.uuid,
            name=league.name,
            publicity=league.publicity,
            number_of_members=len(league.member_emails),
        )


class LeagueStanding(BaseModel):
    """League name plus each member's display name and point total."""

    league_name: str
    users_and_points: dict[str, int]


class RegistrationResponse(BaseModel):
    name: str
    email: str


# =============================================================================
# Requests
# =============================================================================


class RegistrationRequest(BaseModel):
    """Sign-up form."""

    username: str = Field(min_length=1, max_length=50)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    favourite_team: Team | None = None
