"""JWT access tokens and role checks for admin endpoints."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings, config

logger = logging.getLogger(__name__)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str,
    role: str = "admin",
    settings: Optional[Settings] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    settings = settings or config
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_access_token_expire_minutes
    payload = {
        "sub": subject,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> dict:
    """Decode and verify an access JWT. Raises HTTPException on invalid/expired."""
    settings = settings or config
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        if payload.get("type") != "access":
            raise HTTPException(status_code=401, detail="Invalid token type")
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Dependency: require a valid access token, return its claims."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return decode_access_token(credentials.credentials, request.app.state.settings)


async def get_admin_user(user: dict = Depends(get_current_user)) -> dict:
    """Dependency: require admin role."""
    if user.get("role") != "admin":
        logger.warning(f"Rejected non-admin token for {user.get('sub')}")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
