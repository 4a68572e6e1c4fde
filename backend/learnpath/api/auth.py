"""Authentication dependencies.

Tokens are issued upstream; endpoints only need the opaque user id carried
in the token's ``sub`` claim.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.security import user_uid_from_token

logger = logging.getLogger(__name__)

# Bearer tokens only; missing credentials are rejected below with 401
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_uid(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Get the authenticated user id from the bearer token."""
    if credentials is None:
        raise _unauthorized()
    user_uid = user_uid_from_token(credentials.credentials)
    if not user_uid:
        raise _unauthorized()
    return user_uid


async def get_optional_user_uid(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Get the user id if a valid token was sent, else None."""
    if credentials is None:
        return None
    user_uid = user_uid_from_token(credentials.credentials)
    if not user_uid:
        logger.debug("Ignoring invalid bearer token on public endpoint")
    return user_uid
