"""
Storage abstraction layer.

All persistence goes through these interfaces. Services only see
``find_by_key`` / ``save`` / ``exists_by_key`` style lookups, so the
in-memory implementations can be swapped for a database without touching
them.

Multi-record updates (a user joining a league touches both the user and the
league) run inside ``StorageProvider.transaction()`` so they are applied
together or not at all.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Iterable

from pydantic import BaseModel

from predictions.core.models import League, OtpRecord, User


class DuplicateJoinCode(Exception):
    """A league was saved with a join code another league already holds."""

    def __init__(self, code: str):
        super().__init__(f"Join code already taken: {code}")
        self.code = code


# =============================================================================
# Storage Interfaces
# =============================================================================


class UserStore(ABC):
    """
    User credential and profile records, keyed by email.

    Email matching is exact (case-sensitive as stored).
    """

    @abstractmethod
    async def find_by_key(self, email: str) -> User | None:
        """Get a user by email."""
        pass

    @abstractmethod
    async def exists_by_key(self, email: str) -> bool:
        pass

    @abstractmethod
    async def save(self, user: User) -> None:
        """Insert or replace a user."""
        pass

    @abstractmethod
    async def find_many(self, emails: Iterable[str]) -> list[User]:
        """Get every user whose email is listed; unknown emails are skipped."""
        pass


class LeagueStore(ABC):
    """
    League records, keyed by public UUID with a secondary index on join code.
    """

    @abstractmethod
    async def find_by_key(self, league_uuid: str) -> League | None:
        pass

    @abstractmethod
    async def exists_by_key(self, league_uuid: str) -> bool:
        pass

    @abstractmethod
    async def find_by_code(self, code: str) -> League | None:
        pass

    @abstractmethod
    async def exists_by_code(self, code: str) -> bool:
        pass

    @abstractmethod
    async def save(self, league: League) -> None:
        """
        Insert or replace a league.

        Raises DuplicateJoinCode if the league's code belongs to a
        different league.
        """
        pass

    @abstractmethod
    async def find_many(self, league_uuids: Iterable[str]) -> list[League]:
        pass


class OtpStore(ABC):
    """Verification codes, keyed by user id."""

    @abstractmethod
    async def find_by_key(self, user_id: str) -> OtpRecord | None:
        pass

    @abstractmethod
    async def save(self, record: OtpRecord) -> None:
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        pass


class TransactionManager(ABC):
    """Groups several saves into one atomic unit."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """
        Context manager for an atomic unit of work.

        Reads done inside the block see a consistent state; if the block
        raises, every save made inside it is undone.
        """
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    users: UserStore
    leagues: LeagueStore
    otps: OtpStore
    transactions: TransactionManager

    def transaction(self) -> AbstractAsyncContextManager[None]:
        return self.transactions.transaction()
