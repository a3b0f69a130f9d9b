"""
Domain errors.

Every failure the API reports on purpose is a ``PredictionsError`` carrying
the HTTP status and the user-facing message. They are raised where the
problem is detected and turned into a response once, in
``predictions.api.errors``.
"""

from __future__ import annotations


class PredictionsError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# =============================================================================
# Authentication
# =============================================================================


class AuthenticationFailure(PredictionsError):
    """Unknown email or wrong password. Deliberately one message for both."""

    status_code = 400
    message = "Email or password incorrect"


class AccountNotVerified(PredictionsError):
    status_code = 400
    message = "Account not verified"


class AuthenticationRequired(PredictionsError):
    status_code = 401
    message = "Authentication required"


class TokenError(PredictionsError):
    """Base for token problems."""

    status_code = 401
    message = "Invalid token"


class MissingToken(TokenError):
    message = "No refresh token found"


class TokenInvalid(TokenError):
    """Bad signature, malformed token, or wrong token class."""

    message = "Invalid token"


class TokenExpired(TokenError):
    message = "Refresh token expired"


# =============================================================================
# Accounts
# =============================================================================


class EmailAlreadyExists(PredictionsError):
    status_code = 409
    message = "Email already exists"


class UserNotFound(PredictionsError):
    status_code = 404
    message = "Email not found"


class OtpNotFound(PredictionsError):
    status_code = 404
    message = "OTP not found for user"


class OtpExpired(PredictionsError):
    status_code = 400
    message = "OTP expired"


class OtpIncorrect(PredictionsError):
    status_code = 400
    message = "OTP incorrect"


class PasswordMismatch(PredictionsError):
    status_code = 400
    message = "Password is incorrect"


class OAuthFailure(PredictionsError):
    status_code = 502
    message = "Failed to get user info"


# =============================================================================
# Leagues
# =============================================================================


class LeagueNotFound(PredictionsError):
    status_code = 404
    message = "League not found"


class IncorrectLeagueCode(PredictionsError):
    status_code = 400
    message = "Incorrect league code"


class PublicityMismatch(PredictionsError):
    """League joined through the wrong path (public vs private)."""

    status_code = 400
    message = "Publicity mismatch"


class LeagueAlreadyJoined(PredictionsError):
    status_code = 409
    message = "League already joined"


class JoinCodeExhausted(PredictionsError):
    status_code = 503
    message = "Could not allocate a league code"

