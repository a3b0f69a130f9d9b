"""
Tests for the in-memory stores and transactions.
"""

import asyncio

import pytest

from predictions.core.models import League, Publicity, User
from predictions.storage import DuplicateJoinCode


def run(coro):
    return asyncio.run(coro)


def test_reads_are_copies(storage):
    run(storage.users.save(User(email="ana@example.com")))

    user = run(storage.users.find_by_key("ana@example.com"))
    user.league_ids.add("league-1")

    assert run(storage.users.find_by_key("ana@example.com")).league_ids == set()


def test_duplicate_code_refused(storage):
    run(storage.leagues.save(League(name="One", publicity=Publicity.PRIVATE, code="abc123")))

    with pytest.raises(DuplicateJoinCode):
        run(storage.leagues.save(League(name="Two", publicity=Publicity.PRIVATE, code="abc123")))


def test_resaving_same_league_keeps_code(storage):
    league = League(name="One", publicity=Publicity.PRIVATE, code="abc123")
    run(storage.leagues.save(league))
    league.member_emails.add("ana@example.com")
    run(storage.leagues.save(league))

    assert run(storage.leagues.find_by_code("abc123")).member_emails == {"ana@example.com"}


def test_transaction_rolls_back_every_store(storage):
    async def failing_update():
        async with storage.transaction():
            await storage.users.save(User(email="ana@example.com"))
            await storage.leagues.save(League(name="One", publicity=Publicity.PRIVATE, code="abc123"))
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run(failing_update())

    assert not run(storage.users.exists_by_key("ana@example.com"))
    assert not run(storage.leagues.exists_by_code("abc123"))


def test_transaction_commits(storage):
    async def update():
        async with storage.transaction():
            await storage.users.save(User(email="ana@example.com"))

    run(update())

    assert run(storage.users.exists_by_key("ana@example.com"))
