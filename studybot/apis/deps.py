from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header

from studybot.core.db.schemas.auth import User
from studybot.core.errors import AuthenticationFailure
from studybot.modules.auth.users import get_user_manager, get_jwt_strategy


async def current_user(
    access_token: Optional[str] = None,
    authorization: Optional[str] = Header(default=None),
    user_manager=Depends(get_user_manager),
) -> User:
    """Resolve current user from Authorization header or `access_token` query param.

    Any missing, malformed, expired or unknown credential is an
    ``AuthenticationFailure`` (401, ``{"error": "Authentication required"}``).
    """
    token: Optional[str] = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    elif access_token:
        token = access_token

    if not token:
        raise AuthenticationFailure()

    strategy = get_jwt_strategy()
    user = await strategy.read_token(token, user_manager)
    if not user or not user.is_active:
        raise AuthenticationFailure()
    return user


CurrentUser = Annotated[User, Depends(current_user)]
