"""
Caller identity from the Supabase Auth access token.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from pydantic import BaseModel

from utils.exceptions import ForbiddenError, UnauthenticatedError

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(request: Request) -> CurrentUser:
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        raise UnauthenticatedError()

    user = await request.app.state.store.get_user_for_token(token)
    if not user or not user.get("email"):
        raise UnauthenticatedError()
    return CurrentUser(**user)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        logger.warning(f"Admin endpoint refused for {user.email} (role={user.role})")
        raise ForbiddenError()
    return user
