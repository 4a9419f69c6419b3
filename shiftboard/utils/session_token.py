# shiftboard/utils/session_token.py
"""
Signed tokens (PyJWT, HS256):
- session token in the 'auth-token' cookie, issued after a successful LINE login;
- 'auth-session' value that carries state / invite token / redirect through the OAuth round trip.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, status

from shiftboard import config
from shiftboard.models.user import User

ALGO = "HS256"
_AUTH_SESSION_TYPE = "auth_session"


def issue_session_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user.id,
        "lineUserId": user.line_user_id,
        "displayName": user.display_name,
        "role": user.role.value,
        "isActive": bool(user.is_active),
        "iat": now,
        "exp": now + timedelta(hours=config.JWT_EXPIRES_HOURS),
        "iss": config.JWT_ISSUER,
        "aud": config.JWT_AUDIENCE,
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=ALGO)


def verify_session_token(token: str) -> dict:
    """
    Returns the payload or raises 401 (bad/expired token) / 403 (inactive user).
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication token not found")
    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[ALGO],
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token format")

    if not (payload.get("userId") and payload.get("lineUserId") and payload.get("role")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing required fields",
        )
    if not payload.get("isActive"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not active")
    return payload


def issue_auth_session(
    state: str,
    invite_token: Optional[str] = None,
    redirect_url: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "typ": _AUTH_SESSION_TYPE,
        "state": state,
        "inviteToken": invite_token,
        "redirectUrl": redirect_url,
        "iat": now,
        "exp": now + timedelta(seconds=config.AUTH_SESSION_MAX_AGE_SECONDS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=ALGO)


class AuthSessionExpired(Exception):
    pass


def parse_auth_session(value: str) -> Optional[dict]:
    """
    None when the value is not a session we issued; AuthSessionExpired when it is stale.
    """
    try:
        payload = jwt.decode(value, config.JWT_SECRET, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthSessionExpired("Authentication session expired")
    except jwt.InvalidTokenError:
        return None
    if payload.get("typ") != _AUTH_SESSION_TYPE or not payload.get("state"):
        return None
    return payload
