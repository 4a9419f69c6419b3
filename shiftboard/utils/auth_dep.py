# shiftboard/utils/auth_dep.py
"""
Authentication dependencies for protected routes.
- get_current_user: session token from the 'auth-token' cookie (or Authorization: Bearer) -> User
- require_role(...): same, plus a minimum role (ADMIN > MANAGER > MEMBER)
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from shiftboard.db import get_db
from shiftboard.models.user import User, UserRole
from shiftboard.utils.cookies import AUTH_COOKIE
from shiftboard.utils.roles import has_role_at_least
from shiftboard.utils.session_token import verify_session_token

INSUFFICIENT_ROLE = "Insufficient permissions. Admin or Manager role required."


def get_auth_token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(AUTH_COOKIE)
    if token:
        return token
    header_v = request.headers.get("authorization") or ""
    if header_v.startswith("Bearer "):
        return header_v[7:].strip() or None
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = get_auth_token_from_request(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication token required")

    payload = verify_session_token(token)

    user: Optional[User] = db.query(User).filter(User.id == payload["userId"]).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if user.line_user_id != payload["lineUserId"]:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token user ID mismatch")
    # the token may be older than a deactivation, so the row decides
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_role(min_role: UserRole, detail: str = INSUFFICIENT_ROLE):
    def _dep(current_user: User = Depends(get_current_user)) -> User:
        if not has_role_at_least(current_user.role, min_role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return _dep


require_manager = require_role(UserRole.MANAGER)
require_admin = require_role(UserRole.ADMIN, detail="Insufficient permissions. Admin role required.")
