"""
Local storage implementations for development and tests.

In-memory stores that work without any external services. Records are
copied on the way in and out, so callers can mutate what they read without
touching stored state until they call ``save``.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from predictions.core.models import League, OtpRecord, User
from predictions.storage.base import (
    DuplicateJoinCode,
    LeagueStore,
    OtpStore,
    StorageProvider,
    TransactionManager,
    UserStore,
)


class _Snapshottable:
    """Stores whose state can be captured and restored by a transaction."""

    def snapshot(self) -> dict:
        raise NotImplementedError

    def restore(self, state: dict) -> None:
        raise NotImplementedError


# =============================================================================
# Users
# =============================================================================


class InMemoryUserStore(UserStore, _Snapshottable):
    """In-memory user records keyed by email."""

    def __init__(self):
        self._users: dict[str, User] = {}

    async def find_by_key(self, email: str) -> User | None:
        user = self._users.get(email)
        return user.model_copy(deep=True) if user else None

    async def exists_by_key(self, email: str) -> bool:
        return email in self._users

    async def save(self, user: User) -> None:
        self._users[user.email] = user.model_copy(deep=True)

    async def find_many(self, emails: Iterable[str]) -> list[User]:
        return [
            self._users[email].model_copy(deep=True)
            for email in emails
            if email in self._users
        ]

    def snapshot(self) -> dict:
        return {"users": dict(self._users)}

    def restore(self, state: dict) -> None:
        self._users = state["users"]


# =============================================================================
# Leagues
# =============================================================================


class InMemoryLeagueStore(LeagueStore, _Snapshottable):
    """In-memory leagues with a unique index on join code."""

    def __init__(self):
        self._leagues: dict[str, League] = {}
        self._by_code: dict[str, str] = {}  # code -> league uuid

    async def find_by_key(self, league_uuid: str) -> League | None:
        league = self._leagues.get(league_uuid)
        return league.model_copy(deep=True) if league else None

    async def exists_by_key(self, league_uuid: str) -> bool:
        return league_uuid in self._leagues

    async def find_by_code(self, code: str) -> League | None:
        league_uuid = self._by_code.get(code)
        return await self.find_by_key(league_uuid) if league_uuid else None

    async def exists_by_code(self, code: str) -> bool:
        return code in self._by_code

    async def save(self, league: League) -> None:
        if league.code:
            owner = self._by_code.get(league.code)
            if owner is not None and owner != league.uuid:
                raise DuplicateJoinCode(league.code)

        previous = self._leagues.get(league.uuid)
        if previous and previous.code and previous.code != league.code:
            self._by_code.pop(previous.code, None)

        self._leagues[league.uuid] = league.model_copy(deep=True)
        if league.code:
            self._by_code[league.code] = league.uuid

    async def find_many(self, league_uuids: Iterable[str]) -> list[League]:
        return [
            self._leagues[league_uuid].model_copy(deep=True)
            for league_uuid in league_uuids
            if league_uuid in self._leagues
        ]

    def snapshot(self) -> dict:
        return {"leagues": dict(self._leagues), "by_code": dict(self._by_code)}

    def restore(self, state: dict) -> None:
        self._leagues = state["leagues"]
        self._by_code = state["by_code"]


# =============================================================================
# One-time codes
# =============================================================================


class InMemoryOtpStore(OtpStore, _Snapshottable):
    def __init__(self):
        self._codes: dict[str, OtpRecord] = {}

    async def find_by_key(self, user_id: str) -> OtpRecord | None:
        record = self._codes.get(user_id)
        return record.model_copy() if record else None

    async def save(self, record: OtpRecord) -> None:
        self._codes[record.user_id] = record.model_copy()

    async def delete(self, user_id: str) -> bool:
        return self._codes.pop(user_id, None) is not None

    def snapshot(self) -> dict:
        return {"codes": dict(self._codes)}

    def restore(self, state: dict) -> None:
        self._codes = state["codes"]


# =============================================================================
# Transactions
# =============================================================================


class InMemoryTransactionManager(TransactionManager):
    """
    Serializes transactions with a lock and rolls back on error.

    Not reentrant: a transaction must not open another one.
    """

    def __init__(self, stores: list[_Snapshottable]):
        self._stores = stores
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshots = [store.snapshot() for store in self._stores]
            try:
                yield
            except BaseException:
                for store, state in zip(self._stores, snapshots):
                    store.restore(state)
                raise


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    users = InMemoryUserStore()
    leagues = InMemoryLeagueStore()
    otps = InMemoryOtpStore()
    return StorageProvider(
        users=users,
        leagues=leagues,
        otps=otps,
        transactions=InMemoryTransactionManager([users, leagues, otps]),
    )
