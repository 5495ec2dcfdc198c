"""
Request-scoped identity resolution.

Routes never look at tokens themselves; they receive an Actor (or None)
and hand it to the service, which consults the access gate.
"""

from typing import Optional

from fastapi import Header

from kumbh_alert.core.errors import Unauthorized
from kumbh_alert.models.user import Actor
from kumbh_alert.services.user_service import get_user_service
from kumbh_alert.utils.security import get_bearer_token


async def get_optional_actor(
    authorization: Optional[str] = Header(None, alias="Authorization", description="Bearer session token"),
) -> Optional[Actor]:
    """Actor for the bearer token, or None when no token was sent."""
    token = get_bearer_token(authorization)
    if token is None:
        return None
    return get_user_service().resolve_token(token)


async def get_current_actor(
    authorization: Optional[str] = Header(None, alias="Authorization", description="Bearer session token"),
) -> Actor:
    token = get_bearer_token(authorization)
    if token is None:
        raise Unauthorized("Not authorized to access this route - No token provided")
    return get_user_service().resolve_token(token)
