"""Services - account and league operations on top of storage."""

from predictions.services.accounts import AccountService
from predictions.services.leagues import LeagueService

__all__ = [
    "AccountService",
    "LeagueService",
]
