# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=eu-west-2
#
# Without these the service logs what it would have sent and carries on.
# Sending is fire-and-forget: failures are logged, never raised.
#
# =============================================================================

from __future__ import annotations

import asyncio
import html
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from predictions.config import Settings, get_settings

logger = logging.getLogger(__name__)

SIGN_OFF = "Regards,\nTega from the Predictions Team"


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "welcome": {
        "subject": "👋🏾 Welcome to the Predictions League!",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #0f766e;">Welcome, {name}!</h1>
            <p>Welcome to the Predictions League (took you long enough to join lol)! We know you'll love your time here!</p>
        </body>
        </html>
        """,
        "text": """Hello {name},

Welcome to the Predictions League (took you long enough to join lol)! We know you'll love your time here!

""" + SIGN_OFF,
    },

    "verify_otp": {
        "subject": "🔒 Verify your Account",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #0f766e;">Verify your account</h1>
            <p>Hello {name}, to login, verify your account with the following code:</p>
            <p style="text-align: center; font-size: 28px; letter-spacing: 6px; margin: 30px 0;"><strong>{otp}</strong></p>
            <p style="color: #666; font-size: 14px;">This code expires in {expires_minutes} minutes.</p>
        </body>
        </html>
        """,
        "text": """Hello {name},

Welcome (again)! To login, verify your account with the following code:

Code: {otp}

This code expires in {expires_minutes} minutes.
Be quick! You don't have much time...

""" + SIGN_OFF,
    },

    "account_verified": {
        "subject": "🔓 Account Verified Successfully!",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #0f766e;">You're all set, {name}!</h1>
            <p>Your account has been verified successfully.</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{app_url}" style="background: #0f766e; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; display: inline-block;">
                    Start predicting
                </a>
            </p>
        </body>
        </html>
        """,
        "text": """Hello {name},

Your account has been verified successfully! That was fast btw.

Start predicting at: {app_url}

""" + SIGN_OFF,
    },

    "reset_password": {
        "subject": "🗝️ Reset your password",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #0f766e;">Reset your password</h1>
            <p>Hello {name}, we've received a request to reset your password.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, you can safely ignore this email.</p>
        </body>
        </html>
        """,
        "text": """Hello {name},

We've received a request to reset your password.

If you didn't request this, you can safely ignore this email.

""" + SIGN_OFF,
    },

    "password_changed": {
        "subject": "✅ Your password has been changed",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #0f766e;">Password changed</h1>
            <p>Hello {name}, your password has just been changed successfully.</p>
            <p style="color: #666; font-size: 14px;">If you didn't do this yourself, reset your password straight away.</p>
        </body>
        </html>
        """,
        "text": """Hello {name},

Your password has just been changed successfully.

If you didn't do this yourself, reset your password straight away.

""" + SIGN_OFF,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send templated emails via AWS SES."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None and self.settings.use_aws:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)

    async def send(
        self,
        template: str,
        to: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """
        Send an email using a template.

        Args:
            template: Template name (e.g., "welcome", "verify_otp")
            to: Recipient email address
            data: Template variables to substitute

        Returns:
            True if sent successfully, False otherwise
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False

        tpl = TEMPLATES[template]
        data = data or {}

        try:
            subject = tpl["subject"]
            html_body = tpl["html"].format(**{k: html.escape(str(v)) for k, v in data.items()})
            text_body = tpl["text"].format(**data)
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False

        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            logger.debug(f"Email content: {text_body}")
            return False

        try:
            response = await asyncio.to_thread(
                self.client.send_email,
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")
        return True

    async def send_welcome(self, email: str, name: str) -> bool:
        return await self.send("welcome", email, {"name": name})

    async def send_verify_otp(self, email: str, name: str, otp: str) -> bool:
        return await self.send(
            "verify_otp",
            email,
            {"name": name, "otp": otp, "expires_minutes": self.settings.otp_expire_minutes},
        )

    async def send_account_verified(self, email: str, name: str) -> bool:
        return await self.send(
            "account_verified",
            email,
            {"name": name, "app_url": self.settings.frontend_url},
        )

    async def send_reset_password(self, email: str, name: str) -> bool:
        return await self.send("reset_password", email, {"name": name})

    async def send_password_changed(self, email: str, name: str) -> bool:
        return await self.send("password_changed", email, {"name": name})
