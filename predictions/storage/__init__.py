"""
Storage abstractions.

- UserStore   → user credential/profile records (keyed by email)
- LeagueStore → leagues (keyed by UUID, unique join code)
- OtpStore    → account verification codes
"""

from predictions.storage.base import (
    DuplicateJoinCode,
    LeagueStore,
    OtpStore,
    StorageProvider,
    TransactionManager,
    UserStore,
)
from predictions.storage.local import create_local_storage

__all__ = [
    "DuplicateJoinCode",
    "LeagueStore",
    "OtpStore",
    "StorageProvider",
    "TransactionManager",
    "UserStore",
    "create_local_storage",
]
