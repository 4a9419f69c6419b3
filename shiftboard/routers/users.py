# shiftboard/routers/users.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import case
from sqlalchemy.orm import Session

from shiftboard.db import get_db
from shiftboard.models.user import User, UserRole
from shiftboard.schemas.user import UserUpdate, user_to_dict
from shiftboard.utils.auth_dep import get_current_user, require_admin, require_manager
from shiftboard.utils.responses import ok
from shiftboard.utils.roles import ROLE_HIERARCHY, has_role_at_least

router = APIRouter()


def _role_order():
    # highest role first
    return case(
        *[(User.role == role, -rank) for role, rank in ROLE_HIERARCHY.items()],
        else_=0,
    )


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """
    Staff list for managers: role first (ADMIN, MANAGER, MEMBER), then by name.
    """
    q = db.query(User)
    if role is not None:
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search and search.strip():
        q = q.filter(User.display_name.ilike(f"%{search.strip()}%"))

    total = q.count()
    rows = (
        q.order_by(_role_order(), User.display_name.asc(), User.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ok(
        {
            "users": [user_to_dict(u) for u in rows],
            "total": total,
            "page": page,
            "limit": limit,
        }
    )


@router.get("/{user_id}")
def get_user(
    user_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Anyone can read their own record; MANAGER+ can read everybody's."""
    if user_id != current_user.id and not has_role_at_least(current_user.role, UserRole.MANAGER):
        raise HTTPException(status_code=403, detail="You can only view your own user information")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(user_to_dict(user))


@router.patch("/{user_id}")
def update_user(
    payload: UserUpdate,
    user_id: int = Path(..., ge=1),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="At least one field must be provided for update")

    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot modify your own user account")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if "display_name" in changes:
        changes["display_name"] = changes["display_name"].strip()
        if not changes["display_name"]:
            raise HTTPException(status_code=400, detail="Display name cannot be empty")

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return ok(user_to_dict(user), message="User updated successfully")
