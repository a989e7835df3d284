"""Bearer token helpers.

API callers authenticate with a signed JWT whose ``sub`` claim is their user
id. Only ``access`` tokens are accepted.
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from agencytax.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.jwt_access_expire_minutes)
    claims = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        JWTError: If the token is malformed, tampered with or expired
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_user_id_from_token(token: str) -> UUID:
    """Resolve the calling user's id from an access token.

    Raises:
        JWTError: Invalid token, non-access token or missing subject
        ValueError: Subject is not a UUID
    """
    claims = decode_token(token)
    if claims.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    subject = claims.get("sub")
    if not subject:
        raise JWTError("Token missing 'sub' claim")
    return UUID(subject)
