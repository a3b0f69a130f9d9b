"""
League Service.

Creates leagues and manages who is in them. Membership is stored on both
sides (``League.member_emails`` and ``User.league_ids``); every change writes
both inside one storage transaction.

Private leagues get a random join code. Codes are drawn from a 62-symbol
alphabet and checked against the store; the store also refuses a duplicate
code on insert, so two concurrent creations can't end up sharing one.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections import Counter

from predictions.config import Settings, get_settings
from predictions.core.errors import (
    IncorrectLeagueCode,
    JoinCodeExhausted,
    LeagueAlreadyJoined,
    LeagueNotFound,
    PublicityMismatch,
    UserNotFound,
)
from predictions.core.models import League, LeagueStanding, LeagueSummary, Publicity, User
from predictions.storage.base import DuplicateJoinCode, StorageProvider

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase


class LeagueService:
    """League creation, joining and standings."""

    def __init__(self, storage: StorageProvider, settings: Settings | None = None):
        self.storage = storage
        self.settings = settings or get_settings()

    # =========================================================================
    # Lookups
    # =========================================================================

    async def _get_user(self, email: str) -> User:
        user = await self.storage.users.find_by_key(email)
        if user is None:
            raise UserNotFound()
        return user

    async def standings_for(self, league_uuid: str) -> LeagueStanding:
        """
        League name plus every member's points, keyed by first name.

        Members sharing a first name are told apart by their username
        (or email when they have none).
        """
        league = await self.storage.leagues.find_by_key(league_uuid)
        if league is None:
            raise LeagueNotFound()

        members = await self.storage.users.find_many(sorted(league.member_emails))
        counts = Counter(_display_name(member) for member in members)

        points: dict[str, int] = {}
        for member in members:
            name = _display_name(member)
            if counts[name] > 1:
                name = f"{name} ({member.username or member.email})"
            points[name] = member.total_points

        return LeagueStanding(league_name=league.name, users_and_points=points)

    async def leagues_for(self, email: str) -> list[LeagueSummary]:
        user = await self._get_user(email)
        leagues = await self.storage.leagues.find_many(sorted(user.league_ids))
        return [LeagueSummary.from_league(league) for league in leagues]

    # =========================================================================
    # Creation
    # =========================================================================

    def generate_code(self) -> str:
        """Uniform draw per character from 0-9a-zA-Z."""
        return "".join(
            secrets.choice(CODE_ALPHABET) for _ in range(self.settings.league_code_length)
        )

    async def create(self, owner_email: str, name: str, publicity: Publicity) -> LeagueSummary:
        """
        Create a league with the owner as its first member.

        Raises:
            UserNotFound: owner doesn't exist
            JoinCodeExhausted: no free code found for a private league
        """
        if publicity != Publicity.PRIVATE:
            return await self._insert(owner_email, name, publicity, code=None)

        for _ in range(self.settings.league_code_max_attempts):
            code = self.generate_code()
            if await self.storage.leagues.exists_by_code(code):
                continue
            try:
                return await self._insert(owner_email, name, publicity, code=code)
            except DuplicateJoinCode:
                # Lost a race for this code; draw again
                logger.debug("Join code taken at insert, retrying")

        logger.error(
            f"Gave up allocating a league code after "
            f"{self.settings.league_code_max_attempts} attempts"
        )
        raise JoinCodeExhausted()

    async def _insert(
        self,
        owner_email: str,
        name: str,
        publicity: Publicity,
        code: str | None,
    ) -> LeagueSummary:
        async with self.storage.transaction():
            owner = await self._get_user(owner_email)
            league = League(name=name, publicity=publicity, code=code)
            league.member_emails.add(owner.email)
            await self.storage.leagues.save(league)

            owner.league_ids.add(league.uuid)
            await self.storage.users.save(owner)

        logger.info(f"League {league.uuid} created ({publicity.value})")
        return LeagueSummary.from_league(league)

    # =========================================================================
    # Joining
    # =========================================================================

    async def join_public(self, email: str, league_uuid: str) -> str:
        """
        Join a public league by UUID. Returns the league name.

        Raises:
            LeagueNotFound, PublicityMismatch, UserNotFound, LeagueAlreadyJoined
        """
        async with self.storage.transaction():
            league = await self.storage.leagues.find_by_key(league_uuid)
            if league is None:
                raise LeagueNotFound()
            if league.publicity != Publicity.PUBLIC:
                raise PublicityMismatch()
            await self._add_member(league, email)
        return league.name

    async def join_private(self, email: str, code: str) -> str:
        """
        Join a private league by its code. Returns the league name.

        Raises:
            IncorrectLeagueCode, PublicityMismatch, UserNotFound, LeagueAlreadyJoined
        """
        async with self.storage.transaction():
            league = await self.storage.leagues.find_by_code(code)
            if league is None or league.code != code:
                raise IncorrectLeagueCode()
            if league.publicity != Publicity.PRIVATE:
                raise PublicityMismatch()
            await self._add_member(league, email)
        return league.name

    async def _add_member(self, league: League, email: str) -> None:
        """Write both sides of the membership. Caller holds the transaction."""
        user = await self._get_user(email)
        if league.has_member(user.email):
            raise LeagueAlreadyJoined()

        league.member_emails.add(user.email)
        user.league_ids.add(league.uuid)
        await self.storage.leagues.save(league)
        await self.storage.users.save(user)
        logger.info(f"{user.email} joined league {league.uuid}")


def _display_name(user: User) -> str:
    return user.first_name or user.username or user.email
