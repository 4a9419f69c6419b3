# shiftboard/routers/invitations.py
"""
Invitation management for ADMIN / MANAGER, plus the public verify endpoint used
by the login page before sending the visitor to LINE.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from sqlalchemy.orm import Session

from shiftboard import config
from shiftboard.db import get_db
from shiftboard.models.user import User, UserRole
from shiftboard.schemas.invitation import InvitationCreate
from shiftboard.services.invitations import (
    NOT_FOUND,
    InvitationError,
    InvitationPermissionError,
    TokenGenerationError,
    build_invitation_list_item,
    create_invitation_token,
    deactivate_invitation_token,
    fetch_invitation_tokens,
    generate_invitation_url,
    get_active_invitation,
    get_invitation_token,
    remaining_uses,
    validate_invitation_token,
)
from shiftboard.utils.auth_dep import require_manager
from shiftboard.utils.dates import add_months, iso_utc, to_naive_utc, utc_now
from shiftboard.utils.responses import ok
from shiftboard.utils.roles import has_role_at_least

log = logging.getLogger(__name__)

router = APIRouter()

EXPIRY_TOO_FAR = "有効期限は最大1ヶ月までです"
EXPIRY_IN_PAST = "有効期限は現在時刻より後に設定してください"


def _origin(request: Request) -> str:
    return config.APP_BASE_URL or str(request.base_url).rstrip("/")


# ---------------- endpoints ----------------

@router.post("", status_code=status.HTTP_201_CREATED)
def create_invitation(
    payload: InvitationCreate,
    request: Request,
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """
    Issues a new invitation URL. Every previously active invitation stops working.
    """
    now = utc_now()
    expires_at = to_naive_utc(payload.expires_at)
    if expires_at > add_months(now, 1):
        raise HTTPException(status_code=400, detail=EXPIRY_TOO_FAR)
    if expires_at <= now:
        raise HTTPException(status_code=400, detail=EXPIRY_IN_PAST)

    try:
        invitation = create_invitation_token(
            db,
            created_by=current_user.id,
            description=(payload.description or "").strip() or None,
            expires_at=expires_at,
        )
    except InvitationPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except TokenGenerationError:
        log.exception("invitation token generation exhausted")
        raise HTTPException(status_code=500, detail="System error: Unable to generate unique invitation token")
    except Exception:
        log.exception("failed to create invitation for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to create invitation URL")

    return ok(
        {
            "token": invitation.token,
            "invitationUrl": generate_invitation_url(invitation.token, _origin(request)),
            "expiresAt": iso_utc(invitation.expires_at),
            "maxUses": invitation.max_uses,
            "createdBy": current_user.display_name,
        },
        message="Invitation URL created successfully",
    )


@router.get("")
def list_invitations(
    include_inactive: bool = Query(False, alias="includeInactive"),
    show_all: bool = Query(False, alias="showAll"),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """showAll widens the list to every creator, for ADMIN only."""
    rows = fetch_invitation_tokens(db, current_user, include_inactive=include_inactive, show_all=show_all)
    now = utc_now()
    items = [build_invitation_list_item(r, now) for r in rows]
    return ok(items, count=len(items))


@router.get("/active")
def get_active(
    request: Request,
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    row = get_active_invitation(db)
    if row is None:
        raise HTTPException(status_code=404, detail="No active invitation found")
    item = build_invitation_list_item(row)
    item["invitationUrl"] = generate_invitation_url(row.token, _origin(request))
    return ok(item)


@router.get("/{token}/verify")
def verify_invitation(token: str = Path(...), db: Session = Depends(get_db)):
    """
    Public. Lets the login page tell the visitor up front that a link is dead.
    """
    result = validate_invitation_token(db, token)
    if not result.is_valid:
        code = status.HTTP_404_NOT_FOUND if result.error_code == NOT_FOUND else status.HTTP_410_GONE
        raise HTTPException(status_code=code, detail=result.error)

    row = result.token
    return ok(
        {
            "token": row.token,
            "description": row.description or "",
            "expiresAt": iso_utc(row.expires_at),
            "maxUses": row.max_uses,
            "usedCount": row.used_count,
            "remainingUses": remaining_uses(row),
        }
    )


@router.delete("/{token}")
def deactivate_invitation(
    token: str = Path(...),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    token = (token or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="Token parameter is required")

    row = get_invitation_token(db, token)
    if row is None:
        raise HTTPException(status_code=404, detail="Invitation token not found")

    # managers only touch their own invitations; admins touch any
    if not has_role_at_least(current_user.role, UserRole.ADMIN) and row.created_by != current_user.id:
        raise HTTPException(
            status_code=403,
            detail="You can only deactivate invitation tokens you created, or you must be an admin",
        )

    if not row.is_active:
        raise HTTPException(status_code=409, detail="Invitation token is already inactive")

    try:
        row = deactivate_invitation_token(db, token, current_user.id)
    except InvitationPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvitationError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ok(
        {
            "message": "Invitation token deactivated successfully",
            "token": row.token,
            "deactivatedAt": iso_utc(row.updated_at),
            "deactivatedBy": current_user.display_name,
        },
        message="Invitation token deactivated successfully",
    )
