"""
Tests for registration, OTP verification, profile changes and OAuth sign-in.
"""

import asyncio
from datetime import timedelta

import httpx
import pytest

from predictions.auth.jwt import verify_password
from predictions.core.errors import (
    EmailAlreadyExists,
    OAuthFailure,
    OtpExpired,
    OtpIncorrect,
    OtpNotFound,
    PasswordMismatch,
    UserNotFound,
)
from predictions.core.models import RegistrationRequest, Team
from predictions.core.utils import utc_now
from predictions.integrations.oauth import GoogleOAuth
from predictions.services.accounts import AccountService

from conftest import PASSWORD


def run(coro):
    return asyncio.run(coro)


def registration(email="ana@example.com", **overrides):
    fields = {
        "username": "ana_k",
        "first_name": "Ana",
        "last_name": "Kay",
        "email": email,
        "password": PASSWORD,
        "favourite_team": Team.ARSENAL,
    }
    fields.update(overrides)
    return RegistrationRequest(**fields)


# =============================================================================
# Registration
# =============================================================================


class TestRegister:
    def test_creates_unverified_user(self, accounts, storage, email):
        response = run(accounts.register(registration()))

        assert response.name == "Ana"
        assert response.email == "ana@example.com"

        user = run(storage.users.find_by_key("ana@example.com"))
        assert not user.account_verified
        assert user.username == "ana_k"
        assert user.favourite_team == Team.ARSENAL
        assert user.password_hash != PASSWORD
        assert verify_password(PASSWORD, user.password_hash)
        assert email.templates_sent_to("ana@example.com") == ["welcome"]

    def test_duplicate_email(self, accounts, email):
        run(accounts.register(registration()))

        with pytest.raises(EmailAlreadyExists):
            run(accounts.register(registration(first_name="Other")))

        assert email.templates_sent_to("ana@example.com") == ["welcome"]


# =============================================================================
# One-time codes
# =============================================================================


class TestOtp:
    @pytest.fixture
    def registered(self, accounts, storage):
        run(accounts.register(registration()))
        return run(storage.users.find_by_key("ana@example.com"))

    def _stored_code(self, storage, user):
        return run(storage.otps.find_by_key(user.id))

    def test_send_stores_six_digit_code(self, accounts, storage, email, registered):
        run(accounts.send_verify_otp("ana@example.com"))

        record = self._stored_code(storage, registered)
        assert len(record.value) == 6
        assert record.value.isdigit()
        assert record.value[0] != "0"
        assert timedelta(minutes=14) < record.expires_at - utc_now() <= timedelta(minutes=15)

        template, _, data = email.sent[-1]
        assert template == "verify_otp"
        assert data["otp"] == record.value

    def test_resend_overwrites(self, accounts, storage, registered, monkeypatch):
        codes = iter(["111111", "222222"])
        monkeypatch.setattr(accounts, "_generate_otp", lambda: next(codes))

        run(accounts.send_verify_otp("ana@example.com"))
        run(accounts.send_verify_otp("ana@example.com"))

        assert self._stored_code(storage, registered).value == "222222"

    def test_send_to_unknown_email(self, accounts):
        with pytest.raises(UserNotFound):
            run(accounts.send_verify_otp("ghost@example.com"))

    def test_verify(self, accounts, storage, email, registered):
        run(accounts.send_verify_otp("ana@example.com"))
        code = self._stored_code(storage, registered).value

        run(accounts.verify_otp("ana@example.com", code))

        assert run(storage.users.find_by_key("ana@example.com")).account_verified
        assert self._stored_code(storage, registered) is None
        assert email.sent[-1][0] == "account_verified"

    def test_verify_without_code(self, accounts, registered):
        with pytest.raises(OtpNotFound):
            run(accounts.verify_otp("ana@example.com", "123456"))

    def test_verify_wrong_code(self, accounts, storage, registered, monkeypatch):
        monkeypatch.setattr(accounts, "_generate_otp", lambda: "123456")
        run(accounts.send_verify_otp("ana@example.com"))

        with pytest.raises(OtpIncorrect):
            run(accounts.verify_otp("ana@example.com", "654321"))

        assert not run(storage.users.find_by_key("ana@example.com")).account_verified
        record = self._stored_code(storage, registered)
        assert record is not None
        assert record.failed_attempts == 1

    def test_right_code_after_a_wrong_guess(self, accounts, storage, registered, monkeypatch):
        monkeypatch.setattr(accounts, "_generate_otp", lambda: "123456")
        run(accounts.send_verify_otp("ana@example.com"))

        with pytest.raises(OtpIncorrect):
            run(accounts.verify_otp("ana@example.com", "654321"))
        run(accounts.verify_otp("ana@example.com", "123456"))

        assert run(storage.users.find_by_key("ana@example.com")).account_verified

    def test_code_discarded_after_too_many_guesses(self, accounts, storage, settings, registered, monkeypatch):
        monkeypatch.setattr(accounts, "_generate_otp", lambda: "123456")
        run(accounts.send_verify_otp("ana@example.com"))

        for _ in range(settings.otp_max_attempts):
            with pytest.raises(OtpIncorrect):
                run(accounts.verify_otp("ana@example.com", "654321"))

        assert self._stored_code(storage, registered) is None
        with pytest.raises(OtpNotFound):
            run(accounts.verify_otp("ana@example.com", "123456"))
        assert not run(storage.users.find_by_key("ana@example.com")).account_verified

    def test_resend_resets_the_guess_count(self, accounts, storage, registered, monkeypatch):
        monkeypatch.setattr(accounts, "_generate_otp", lambda: "123456")
        run(accounts.send_verify_otp("ana@example.com"))
        with pytest.raises(OtpIncorrect):
            run(accounts.verify_otp("ana@example.com", "654321"))

        run(accounts.send_verify_otp("ana@example.com"))

        assert self._stored_code(storage, registered).failed_attempts == 0

    def test_verify_expired_code(self, accounts, storage, registered):
        run(accounts.send_verify_otp("ana@example.com"))
        record = self._stored_code(storage, registered)
        record.expires_at = utc_now() - timedelta(seconds=1)
        run(storage.otps.save(record))

        with pytest.raises(OtpExpired):
            run(accounts.verify_otp("ana@example.com", record.value))

    def test_verify_unknown_email(self, accounts):
        with pytest.raises(UserNotFound):
            run(accounts.verify_otp("ghost@example.com", "123456"))


# =============================================================================
# Profile
# =============================================================================


class TestPasswords:
    def test_change_password(self, accounts, storage, email, make_user):
        make_user("ana@example.com")

        run(accounts.change_password("ana@example.com", PASSWORD, "a-brand-new-password"))

        user = run(storage.users.find_by_key("ana@example.com"))
        assert verify_password("a-brand-new-password", user.password_hash)
        assert email.templates_sent_to("ana@example.com") == ["password_changed"]

    def test_change_password_wrong_old(self, accounts, storage, make_user):
        make_user("ana@example.com")

        with pytest.raises(PasswordMismatch):
            run(accounts.change_password("ana@example.com", "wrong-password", "a-brand-new-password"))

        user = run(storage.users.find_by_key("ana@example.com"))
        assert verify_password(PASSWORD, user.password_hash)

    def test_reset_password_email(self, accounts, email, make_user):
        make_user("ana@example.com")

        run(accounts.request_password_reset("ana@example.com"))

        assert email.templates_sent_to("ana@example.com") == ["reset_password"]

    def test_hashing_runs_in_worker_threads(self, accounts, make_user, monkeypatch):
        make_user("ana@example.com")
        offloaded = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

        run(accounts.change_password("ana@example.com", PASSWORD, "a-brand-new-password"))
        run(accounts.register(registration(email="ben@example.com")))

        assert offloaded == ["verify_password", "hash_password", "hash_password"]


# =============================================================================
# OAuth
# =============================================================================


def google_with(handler):
    return GoogleOAuth(transport=httpx.MockTransport(handler))


def userinfo_for(tokens):
    """Fake userinfo endpoint answering for the given {token: profile} map."""

    def handler(request):
        token = request.headers["Authorization"].removeprefix("Bearer ")
        if token not in tokens:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json=tokens[token])

    return handler


ANA_PROFILE = {
    "email": "ana@example.com",
    "email_verified": True,
    "given_name": "Ana",
    "family_name": "Kay",
}


class TestOAuth:
    def test_new_user_is_created_verified(self, storage, email, settings):
        accounts = AccountService(
            storage, email, settings, google_with(userinfo_for({"provider-token": ANA_PROFILE}))
        )

        user, created = run(accounts.oauth_sign_in("ana@example.com", "provider-token"))

        assert created
        assert user.account_verified
        assert user.first_name == "Ana"
        assert user.last_name == "Kay"
        assert user.password_hash == ""
        assert run(storage.users.exists_by_key("ana@example.com"))

    def test_existing_user_signs_in_with_valid_token(self, storage, email, settings, make_user):
        make_user("ana@example.com", first_name="Ana")
        accounts = AccountService(
            storage, email, settings, google_with(userinfo_for({"provider-token": ANA_PROFILE}))
        )

        user, created = run(accounts.oauth_sign_in("ana@example.com", "provider-token"))

        assert not created
        assert user.first_name == "Ana"

    def test_existing_user_with_junk_token(self, storage, email, settings, make_user):
        make_user("ana@example.com")
        accounts = AccountService(storage, email, settings, google_with(userinfo_for({})))

        with pytest.raises(OAuthFailure):
            run(accounts.oauth_sign_in("ana@example.com", "junk"))

    def test_token_for_someone_else(self, storage, email, settings, make_user):
        make_user("ana@example.com")
        mallory = {"email": "mallory@example.com", "email_verified": True}
        accounts = AccountService(
            storage, email, settings, google_with(userinfo_for({"mallory-token": mallory}))
        )

        with pytest.raises(OAuthFailure):
            run(accounts.oauth_sign_in("ana@example.com", "mallory-token"))

    def test_unverified_provider_email(self, storage, email, settings):
        profile = {**ANA_PROFILE, "email_verified": False}
        accounts = AccountService(
            storage, email, settings, google_with(userinfo_for({"provider-token": profile}))
        )

        with pytest.raises(OAuthFailure):
            run(accounts.oauth_sign_in("ana@example.com", "provider-token"))

        assert not run(storage.users.exists_by_key("ana@example.com"))

    def test_provider_refuses(self, storage, email, settings):
        accounts = AccountService(
            storage, email, settings, google_with(lambda request: httpx.Response(401, json={}))
        )

        with pytest.raises(OAuthFailure):
            run(accounts.oauth_sign_in("ana@example.com", "bad-token"))

        assert not run(storage.users.exists_by_key("ana@example.com"))

    def test_finish_registration(self, accounts, storage, make_user):
        make_user("ana@example.com", password=None)

        run(accounts.finish_registration("ana@example.com", "ana_k", Team.LIVERPOOL))

        user = run(storage.users.find_by_key("ana@example.com"))
        assert user.username == "ana_k"
        assert user.favourite_team == Team.LIVERPOOL
