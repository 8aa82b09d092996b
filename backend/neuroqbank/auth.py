"""Caller identity.

Tokens are issued by the external auth provider as HS256 JWTs carrying a
``user_id`` claim. Review and ranking endpoints accept anonymous calls and
answer with neutral results; data-entry endpoints require a user.
"""
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Header, HTTPException

from neuroqbank.config import settings


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_in or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    payload = {"user_id": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and validate a token. Raises HTTPException on invalid or expired tokens."""
    try:
        return jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_optional_user(authorization: str | None = Header(None)) -> str | None:
    """Return the caller's user id, or None when no Authorization header is sent."""
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    payload = decode_access_token(authorization.split(" ", 1)[1])
    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no user_id")
    return user_id


async def require_user(user_id: str | None = Depends(get_optional_user)) -> str:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id
