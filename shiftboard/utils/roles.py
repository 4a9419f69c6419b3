# shiftboard/utils/roles.py
# The one place where roles are compared: ADMIN > MANAGER > MEMBER.

from __future__ import annotations

from typing import Optional, Union

from shiftboard.models.user import User, UserRole

ROLE_HIERARCHY = {
    UserRole.ADMIN: 3,
    UserRole.MANAGER: 2,
    UserRole.MEMBER: 1,
}

ROLE_LABELS = {
    UserRole.ADMIN: "管理者",
    UserRole.MANAGER: "マネージャー",
    UserRole.MEMBER: "メンバー",
}

RoleLike = Union[UserRole, str, None]


def to_role(value: RoleLike) -> Optional[UserRole]:
    if value is None:
        return None
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(str(value).upper())
    except ValueError:
        return None


def role_rank(value: RoleLike) -> int:
    """0 for unknown roles, so they never pass a check."""
    role = to_role(value)
    return ROLE_HIERARCHY.get(role, 0) if role else 0


def has_role_at_least(value: RoleLike, required: RoleLike) -> bool:
    need = role_rank(required)
    return need > 0 and role_rank(value) >= need


def can_manage_invitations(user: Optional[User]) -> bool:
    return bool(user and user.is_active and has_role_at_least(user.role, UserRole.MANAGER))
