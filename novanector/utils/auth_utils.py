# novanector/utils/auth_utils.py
from datetime import datetime, timedelta, timezone

import jwt

from novanector.core.config import settings


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str):
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])


def user_claims(user: dict) -> dict:
    """Identity claims embedded in a login token."""
    return {
        "id": str(user["_id"]),
        "email": user["email"],
        "username": user["username"],
        "role": user["role"],
    }
