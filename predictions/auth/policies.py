"""
Policies - the interface routes use to get the caller's identity.

Just use: `ctx: AuthContext = Depends(require_auth())`

Design:
- The middleware has already resolved the identity for this request
- `require()` returns a FastAPI dependency that reads it back
- If the policy is not met, raises AuthenticationRequired (401)
- If it is, returns the AuthContext for the route to use
"""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from predictions.auth.context import AuthContext, get_auth_context
from predictions.core.errors import AuthenticationRequired


class Policy:
    """
    What a route demands of the caller.

    Only authentication exists today; there are no roles or authorities
    beyond "is a known, logged-in user".
    """

    def __init__(self, require_auth: bool = True):
        self.require_auth = require_auth

    def check(self, ctx: AuthContext) -> tuple[bool, str | None]:
        """
        Check if context satisfies this policy.

        Returns: (allowed, error_message)
        """
        if self.require_auth and ctx.is_anonymous:
            return False, "Authentication required"
        return True, None


def require(require_auth: bool = True) -> Callable:
    """
    Build a dependency that enforces a policy.

    Usage:
        @router.get("/leagues")
        async def my_leagues(ctx: AuthContext = Depends(require())):
            return await leagues.leagues_for(ctx.email)
    """
    return _create_dependency(Policy(require_auth=require_auth))


def require_auth() -> Callable:
    """Just require authentication."""
    return require(require_auth=True)


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI Depends from a policy."""

    async def dependency(request: Request) -> AuthContext:
        ctx = get_auth_context(request)
        allowed, error = policy.check(ctx)
        if not allowed:
            raise AuthenticationRequired(error)
        return ctx

    return dependency
