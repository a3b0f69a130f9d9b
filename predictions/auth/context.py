"""
Auth context - who is making this request.

Built once per request by ``RequestAuthenticator`` and handed to route
handlers through ``Depends(require_auth())``. It is never stored anywhere
that outlives the request.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import HTTPConnection

# Key under the ASGI scope's "state" where the middleware puts the context
SCOPE_STATE_KEY = "auth"


@dataclass(frozen=True)
class AuthContext:
    """
    Identity for a single request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_auth())):
            print(f"Request from {ctx.email}")
    """

    email: str | None = None
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Is there a logged-in user?"""
        return self.email is not None

    @property
    def is_anonymous(self) -> bool:
        return self.email is None

    @classmethod
    def anonymous(cls) -> AuthContext:
        """Create an anonymous context (no user)."""
        return cls()


def get_auth_context(connection: HTTPConnection) -> AuthContext:
    """Read the context attached to this request, anonymous if none was set."""
    ctx = connection.scope.get("state", {}).get(SCOPE_STATE_KEY)
    return ctx if isinstance(ctx, AuthContext) else AuthContext.anonymous()


def set_auth_context(scope: dict, ctx: AuthContext) -> None:
    """Attach ``ctx`` to one request's scope, replacing whatever was there."""
    scope.setdefault("state", {})[SCOPE_STATE_KEY] = ctx
