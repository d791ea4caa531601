"""
backend/app/services/auth_service.py

Purpose:
    Access-token verification and role gating. Tokens are issued by the hosted
    auth provider; this service only verifies them and resolves the caller's
    profile. These dependencies are the server-side authorization boundary.

Dependencies:
    - PyJWT
    - app.services.profile_service
"""

import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Request, status
from jwt.exceptions import InvalidTokenError as JWTError

from app.config import settings
from app.models.profile import Role
from app.services import profile_service

logger = logging.getLogger("parlay.auth")

ALGORITHM = "HS256"


def decode_jwt(token: str) -> dict:
    """Decode a JWT, trying the current secret first, then the old one.

    Zero-downtime rotation of JWT_SECRET:
    1. Set JWT_SECRET to the new value and JWT_SECRET_OLD to the previous one.
    2. Once every token signed with the old secret has expired, clear JWT_SECRET_OLD.
    """
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    audience = settings.JWT_AUDIENCE or None
    try:
        return jwt.decode(
            token, settings.JWT_SECRET, algorithms=[ALGORITHM],
            audience=audience, options=options,
        )
    except JWTError:
        if settings.JWT_SECRET_OLD:
            return jwt.decode(
                token, settings.JWT_SECRET_OLD, algorithms=[ALGORITHM],
                audience=audience, options=options,
            )
        raise


def _extract_token(request: Request) -> Optional[str]:
    """Bearer header first (API clients), then the access_token cookie (browser)."""
    header = request.headers.get("authorization") or ""
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get("access_token")


async def get_current_user(request: Request) -> dict:
    """FastAPI dependency: validate the access token and return the caller's profile.

    The profile is created on first sign-in.
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in.",
        )

    try:
        payload = decode_jwt(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
        )

    return await profile_service.ensure_profile(payload)


async def get_commissioner_user(request: Request) -> dict:
    """FastAPI dependency: requires the COMMISSIONER role."""
    user = await get_current_user(request)
    if user.get("role") != Role.COMMISSIONER.value:
        logger.warning("Commissioner route denied for user %s", user.get("user_id"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Commissioner access required.",
        )
    return user
