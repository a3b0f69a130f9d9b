"""
Core module - fundamental data models and errors.

This module contains:
- models: Users, leagues, one-time codes and response shapes
- errors: Domain errors with their HTTP status and message
- utils: Shared utility functions
"""

from predictions.core.errors import PredictionsError
from predictions.core.models import (
    League,
    LeagueStanding,
    LeagueSummary,
    OtpRecord,
    Publicity,
    RegistrationRequest,
    RegistrationResponse,
    Team,
    User,
)
from predictions.core.utils import (
    generate_id,
    generate_uuid,
    utc_now,
)

__all__ = [
    # Models
    "League",
    "LeagueStanding",
    "LeagueSummary",
    "OtpRecord",
    "Publicity",
    "RegistrationRequest",
    "RegistrationResponse",
    "Team",
    "User",
    # Errors
    "PredictionsError",
    # Utils
    "generate_id",
    "generate_uuid",
    "utc_now",
]
