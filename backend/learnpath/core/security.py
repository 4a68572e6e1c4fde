"""Bearer token utilities.

Tokens are issued by the identity provider in front of this service; here
they are only decoded to recover the opaque user id carried in ``sub``.
"""

from typing import Optional

from jose import jwt, JWTError

from .config import get_settings


def verify_access_token(token: str) -> Optional[dict]:
    """Verify and decode a JWT token."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def user_uid_from_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid token, else None."""
    payload = verify_access_token(token)
    if not payload:
        return None
    uid = payload.get("sub")
    if not uid or not isinstance(uid, str):
        return None
    return uid
