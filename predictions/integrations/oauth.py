# =============================================================================
# OAuth Integration (Google)
# =============================================================================
#
# The provider handshake itself happens in front of this service (an OAuth
# proxy), which forwards the signed-in user's email and provider access
# token as request headers. All we do here is fetch the profile for
# first-time users.
#
# Setup:
#   Nothing to configure; the access token forwarded by the proxy is
#   enough to call the OpenID userinfo endpoint.
#
# =============================================================================

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel

from predictions.core.errors import OAuthFailure

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class OAuthUserInfo(BaseModel):
    """Profile attributes retrieved from the provider."""
    email: str | None = None
    first_name: str = ""
    last_name: str = ""
    email_verified: bool = False


# =============================================================================
# Google OpenID
# =============================================================================

class GoogleOAuth:
    """Google OpenID Connect userinfo lookup."""

    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        """
        Get the user's profile from Google.

        Args:
            access_token: Provider access token forwarded by the proxy

        Raises:
            OAuthFailure: the provider could not be reached or refused the token
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Google userinfo request failed: {e}")
            raise OAuthFailure() from e

        if response.status_code != 200:
            logger.error(f"Google userinfo failed: {response.status_code} {response.text}")
            raise OAuthFailure()

        data = response.json()
        return OAuthUserInfo(
            email=data.get("email"),
            first_name=data.get("given_name") or "",
            last_name=data.get("family_name") or "",
            email_verified=bool(data.get("email_verified", False)),
        )
