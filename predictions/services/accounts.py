"""
Account Service.

Everything about a user's account that isn't issuing tokens: sign-up,
one-time-code verification, password changes, and accounts created through
OAuth sign-in.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import timedelta

from predictions.auth.jwt import hash_password, verify_password
from predictions.config import Settings, get_settings
from predictions.core.errors import (
    EmailAlreadyExists,
    OAuthFailure,
    OtpExpired,
    OtpIncorrect,
    OtpNotFound,
    PasswordMismatch,
    UserNotFound,
)
from predictions.core.models import (
    OtpRecord,
    RegistrationRequest,
    RegistrationResponse,
    Team,
    User,
)
from predictions.core.utils import utc_now
from predictions.integrations.email import EmailService
from predictions.integrations.oauth import GoogleOAuth
from predictions.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class AccountService:
    """Registration, verification and profile changes."""

    def __init__(
        self,
        storage: StorageProvider,
        email: EmailService,
        settings: Settings | None = None,
        oauth: GoogleOAuth | None = None,
    ):
        self.storage = storage
        self.email = email
        self.settings = settings or get_settings()
        self.oauth = oauth or GoogleOAuth()

    async def _get_user(self, email: str) -> User:
        user = await self.storage.users.find_by_key(email)
        if user is None:
            raise UserNotFound()
        return user

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(self, request: RegistrationRequest) -> RegistrationResponse:
        """Create an unverified account and send the welcome email."""
        if await self.storage.users.exists_by_key(request.email):
            raise EmailAlreadyExists()
        password_hash = await asyncio.to_thread(hash_password, request.password)

        async with self.storage.transaction():
            if await self.storage.users.exists_by_key(request.email):
                raise EmailAlreadyExists()

            user = User(
                email=request.email,
                password_hash=password_hash,
                account_verified=False,
                first_name=request.first_name,
                last_name=request.last_name,
                username=request.username,
                favourite_team=request.favourite_team,
            )
            await self.storage.users.save(user)

        logger.info(f"Registered {user.email}")
        await self.email.send_welcome(user.email, user.first_name)
        return RegistrationResponse(name=user.first_name, email=user.email)

    # =========================================================================
    # One-time codes
    # =========================================================================

    def _generate_otp(self) -> str:
        """Uniform n-digit code without a leading zero."""
        low = 10 ** (self.settings.otp_length - 1)
        return str(low + secrets.randbelow(9 * low))

    async def send_verify_otp(self, email: str) -> None:
        """Issue (or replace) the user's verification code and email it."""
        user = await self._get_user(email)
        record = OtpRecord(
            user_id=user.id,
            value=self._generate_otp(),
            expires_at=utc_now() + timedelta(minutes=self.settings.otp_expire_minutes),
        )
        await self.storage.otps.save(record)
        await self.email.send_verify_otp(user.email, user.first_name, record.value)

    async def verify_otp(self, email: str, otp: str) -> None:
        """
        Mark the account verified if ``otp`` matches the stored code.

        Each wrong guess is counted on the record; after
        ``otp_max_attempts`` of them the code is deleted and a new one has
        to be requested.

        Raises:
            UserNotFound, OtpNotFound, OtpExpired, OtpIncorrect
        """
        async with self.storage.transaction():
            user = await self._get_user(email)
            record = await self.storage.otps.find_by_key(user.id)
            if record is None:
                raise OtpNotFound()
            if record.is_expired():
                raise OtpExpired()

            matched = secrets.compare_digest(otp.encode(), record.value.encode())
            if not matched:
                # Recorded here and raised after commit, so the count survives
                record.failed_attempts += 1
                if record.failed_attempts >= self.settings.otp_max_attempts:
                    await self.storage.otps.delete(user.id)
                    logger.warning(f"Discarded verification code for {user.email} after too many attempts")
                else:
                    await self.storage.otps.save(record)
            else:
                user.account_verified = True
                user.updated_at = utc_now()
                await self.storage.users.save(user)
                await self.storage.otps.delete(user.id)

        if not matched:
            raise OtpIncorrect()

        logger.info(f"Verified {user.email}")
        await self.email.send_account_verified(user.email, user.first_name)

    # =========================================================================
    # Profile
    # =========================================================================

    async def get_profile(self, email: str) -> User:
        return await self._get_user(email)

    async def change_password(self, email: str, old_password: str, new_password: str) -> None:
        user = await self._get_user(email)
        if not await asyncio.to_thread(verify_password, old_password, user.password_hash):
            raise PasswordMismatch()
        new_hash = await asyncio.to_thread(hash_password, new_password)

        async with self.storage.transaction():
            user = await self._get_user(email)
            user.password_hash = new_hash
            user.updated_at = utc_now()
            await self.storage.users.save(user)

        await self.email.send_password_changed(user.email, user.first_name)

    async def request_password_reset(self, email: str) -> None:
        user = await self._get_user(email)
        await self.email.send_reset_password(user.email, user.first_name)

    # =========================================================================
    # OAuth
    # =========================================================================

    async def oauth_sign_in(self, email: str, provider_access_token: str) -> tuple[User, bool]:
        """
        Find the account for a provider-authenticated email, creating it if new.

        The provider is always asked who the access token belongs to; the
        forwarded email must match its verified answer. New accounts are
        verified and have no password. Returns the user and whether it was
        just created.

        Raises:
            OAuthFailure: provider refused the token, or its email is
                missing, unverified or different from ``email``
        """
        info = await self.oauth.get_user_info(provider_access_token)
        if not info.email or not info.email_verified or info.email.lower() != email.lower():
            logger.warning("OAuth sign-in rejected: provider identity does not match forwarded email")
            raise OAuthFailure()

        user = await self.storage.users.find_by_key(email)
        if user is not None:
            return user, False

        user = User(
            email=email,
            first_name=info.first_name,
            last_name=info.last_name,
            account_verified=True,
        )
        async with self.storage.transaction():
            existing = await self.storage.users.find_by_key(email)
            if existing is not None:
                return existing, False
            await self.storage.users.save(user)

        logger.info(f"Registered {email} through OAuth")
        return user, True

    async def finish_registration(
        self,
        email: str,
        username: str,
        favourite_team: Team | None,
    ) -> User:
        """Fill in the profile fields the provider doesn't supply."""
        async with self.storage.transaction():
            user = await self._get_user(email)
            user.username = username
            user.favourite_team = favourite_team
            user.updated_at = utc_now()
            await self.storage.users.save(user)
        return user
