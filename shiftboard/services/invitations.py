# shiftboard/services/invitations.py
"""
Invitation tokens: generation, validation, consumption and deactivation.

Policy:
  • only one invitation is active and unexpired at a time, system-wide; creating a
    new one deactivates all others in the same transaction;
  • usage is counted with a conditional UPDATE (used_count < max_uses in WHERE),
    never with read-check-write;
  • rows are never deleted.

Functions do not raise HTTPException; routers map the exceptions below to statuses.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import quote

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from shiftboard.models.invitation_token import InvitationToken
from shiftboard.models.user import User, UserRole
from shiftboard.utils.dates import iso_utc, to_naive_utc, utc_now
from shiftboard.utils.roles import has_role_at_least
from shiftboard.utils.secure_log import mask_value

log = logging.getLogger(__name__)

TOKEN_PREFIX = "inv_"
TOKEN_BYTES = 32
MAX_GENERATION_ATTEMPTS = 5

# validation / consumption codes
NOT_FOUND = "NOT_FOUND"
INACTIVE = "INACTIVE"
EXPIRED = "EXPIRED"
MAX_USES_EXCEEDED = "MAX_USES_EXCEEDED"
USER_EXISTS = "USER_EXISTS"

MAX_USES_MESSAGE = "Invitation token has reached maximum uses"


class InvitationError(ValueError):
    """Business failure; str(e) is the caller-facing message."""


class InvitationPermissionError(InvitationError):
    pass


class InvitationUsageError(InvitationError):
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class TokenGenerationError(RuntimeError):
    pass


@dataclass
class TokenValidationResult:
    is_valid: bool
    token: Optional[InvitationToken] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# ---------------- helpers ----------------

def _generate_secure_token() -> str:
    digest = hashlib.sha256(secrets.token_bytes(TOKEN_BYTES)).hexdigest()
    return TOKEN_PREFIX + digest


def _token_query(db: Session):
    return db.query(InvitationToken).options(joinedload(InvitationToken.creator))


def _get_token_row(db: Session, token: str) -> Optional[InvitationToken]:
    return _token_query(db).filter(InvitationToken.token == token).first()


def get_invitation_token(db: Session, token: str) -> Optional[InvitationToken]:
    return _get_token_row(db, token)


def _require_manager(user: User, *, action: str, inactive_message: str) -> User:
    if not user.is_active:
        raise InvitationPermissionError(inactive_message)
    if not has_role_at_least(user.role, UserRole.MANAGER):
        raise InvitationPermissionError(
            f"Insufficient permissions: Only ADMIN or MANAGER can {action} invitations"
        )
    return user


def _unique_token(db: Session) -> str:
    for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
        token = _generate_secure_token()
        exists = db.query(InvitationToken.id).filter(InvitationToken.token == token).first()
        if exists is None:
            return token
        log.warning("invitation token collision (attempt %s/%s)", attempt, MAX_GENERATION_ATTEMPTS)
    raise TokenGenerationError("Failed to generate unique invitation token")


def _resolve_expiry(expires_at: Optional[datetime], expires_in_hours: Optional[float]) -> datetime:
    if expires_at is not None and expires_in_hours is not None:
        raise ValueError("Pass either expires_at or expires_in_hours, not both")
    if expires_at is not None:
        return to_naive_utc(expires_at)
    if expires_in_hours is not None:
        return utc_now() + timedelta(hours=expires_in_hours)
    raise ValueError("expires_at or expires_in_hours is required")


# ---------------- create ----------------

def create_invitation_token(
    db: Session,
    *,
    created_by: int,
    description: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    expires_in_hours: Optional[float] = None,
    max_uses: Optional[int] = None,
) -> InvitationToken:
    """
    Creates a new invitation and supersedes every other active one.

    max_uses stays NULL (unlimited) for invitations created from the API; the
    argument exists for capped invitations.
    """
    creator: Optional[User] = db.query(User).filter(User.id == created_by).first()
    if not creator:
        raise InvitationPermissionError("Invalid user ID: Creator not found")
    _require_manager(
        creator,
        action="create",
        inactive_message="Inactive user cannot create invitation tokens",
    )

    final_expires_at = _resolve_expiry(expires_at, expires_in_hours)
    token = _unique_token(db)

    now = utc_now()
    try:
        superseded = (
            db.query(InvitationToken)
            .filter(InvitationToken.is_active.is_(True), InvitationToken.expires_at > now)
            .update({"is_active": False, "updated_at": now}, synchronize_session=False)
        )
        invitation = InvitationToken(
            token=token,
            description=description or None,
            expires_at=final_expires_at,
            created_by=creator.id,
            max_uses=max_uses,
            used_count=0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(invitation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invitation)
    log.info(
        "invitation created by user %s (expires_at=%s, superseded=%s, token=%s)",
        creator.id, iso_utc(final_expires_at), superseded, mask_value(token),
    )
    return invitation


# ---------------- validate ----------------

def _classify(row: Optional[InvitationToken], now: datetime) -> TokenValidationResult:
    if row is None:
        return TokenValidationResult(False, error="Invitation token not found", error_code=NOT_FOUND)
    if not row.is_active:
        return TokenValidationResult(False, token=row, error="Invitation token is disabled", error_code=INACTIVE)
    if row.expires_at <= now:
        return TokenValidationResult(False, token=row, error="Invitation token has expired", error_code=EXPIRED)
    if row.max_uses is not None and row.used_count >= row.max_uses:
        return TokenValidationResult(False, token=row, error=MAX_USES_MESSAGE, error_code=MAX_USES_EXCEEDED)
    return TokenValidationResult(True, token=row)


def _check_format(token) -> Optional[TokenValidationResult]:
    if not token or not isinstance(token, str):
        return TokenValidationResult(False, error="Invalid token format", error_code=NOT_FOUND)
    if not token.startswith(TOKEN_PREFIX):
        return TokenValidationResult(False, error="Invalid token prefix", error_code=NOT_FOUND)
    return None


def validate_invitation_token(db: Session, token: str) -> TokenValidationResult:
    """Read-only classification; first failing check wins."""
    bad = _check_format(token)
    if bad is not None:
        return bad
    return _classify(_get_token_row(db, token), utc_now())


# ---------------- consume ----------------

def _conditional_increment(db: Session, token: str) -> None:
    """
    The guard against over-use: the cap is re-checked by the database in the same
    statement that increments. Does not commit.
    """
    stmt = (
        update(InvitationToken)
        .where(
            InvitationToken.token == token,
            or_(
                InvitationToken.max_uses.is_(None),
                InvitationToken.used_count < InvitationToken.max_uses,
            ),
        )
        .values(used_count=InvitationToken.used_count + 1, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        raise InvitationUsageError(MAX_USES_MESSAGE, MAX_USES_EXCEEDED)


def increment_token_usage(db: Session, token: str) -> InvitationToken:
    validation = validate_invitation_token(db, token)
    if not validation.is_valid:
        raise InvitationUsageError(f"Cannot increment usage: {validation.error}", validation.error_code)

    try:
        _conditional_increment(db, token)
        db.commit()
    except Exception:
        db.rollback()
        raise

    row = _get_token_row(db, token)
    db.refresh(row)
    return row


def accept_invitation(
    db: Session,
    *,
    token: str,
    line_user_id: str,
    display_name: str,
    picture_url: Optional[str] = None,
) -> User:
    """
    Signup through an invitation, all-or-nothing: validation, the duplicate
    check, the new MEMBER row and the usage increment share one transaction.
    """
    try:
        validation = validate_invitation_token(db, token)
        if not validation.is_valid:
            raise InvitationUsageError(validation.error or "Invalid invitation token", validation.error_code)

        if db.query(User.id).filter(User.line_user_id == line_user_id).first() is not None:
            raise InvitationUsageError("User already exists", USER_EXISTS)

        user = User(
            line_user_id=line_user_id,
            display_name=display_name,
            picture_url=picture_url or None,
            role=UserRole.MEMBER,
            is_active=True,
        )
        db.add(user)
        db.flush()

        _conditional_increment(db, token)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    log.info("user %s registered via invitation %s", user.id, mask_value(token))
    return user


# ---------------- deactivate ----------------

def deactivate_invitation_token(db: Session, token: str, deactivated_by: int) -> InvitationToken:
    user: Optional[User] = db.query(User).filter(User.id == deactivated_by).first()
    if not user:
        raise InvitationPermissionError("Invalid user: Cannot deactivate invitation token")
    _require_manager(
        user,
        action="deactivate",
        inactive_message="Invalid user: Cannot deactivate invitation token",
    )

    row = _get_token_row(db, token)
    if row is None:
        raise InvitationError("Invitation token not found")

    row.is_active = False
    row.updated_at = utc_now()
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    log.info("invitation %s deactivated by user %s", mask_value(token), user.id)
    return row


# ---------------- listing ----------------

def get_invitation_tokens_by_creator(
    db: Session, created_by: int, include_inactive: bool = False
) -> List[InvitationToken]:
    q = _token_query(db).filter(InvitationToken.created_by == created_by)
    if not include_inactive:
        q = q.filter(InvitationToken.is_active.is_(True))
    return q.order_by(InvitationToken.created_at.desc(), InvitationToken.id.desc()).all()


def get_all_invitation_tokens(db: Session, include_inactive: bool = False) -> List[InvitationToken]:
    q = _token_query(db)
    if not include_inactive:
        q = q.filter(InvitationToken.is_active.is_(True))
    return q.order_by(InvitationToken.created_at.desc(), InvitationToken.id.desc()).all()


def fetch_invitation_tokens(
    db: Session, user: User, *, include_inactive: bool = False, show_all: bool = False
) -> List[InvitationToken]:
    """show_all is honoured for ADMIN only; everybody else sees their own invitations."""
    if show_all and has_role_at_least(user.role, UserRole.ADMIN):
        return get_all_invitation_tokens(db, include_inactive)
    return get_invitation_tokens_by_creator(db, user.id, include_inactive)


def remaining_uses(row: InvitationToken) -> Optional[int]:
    if row.max_uses is None:
        return None
    return row.max_uses - row.used_count


def build_invitation_list_item(row: InvitationToken, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    creator = row.creator
    return {
        "token": row.token,
        "description": row.description or "",
        "expiresAt": iso_utc(row.expires_at),
        "isActive": row.is_active,
        "maxUses": row.max_uses,
        "usedCount": row.used_count,
        "createdAt": iso_utc(row.created_at),
        "createdBy": row.created_by,
        "creatorName": creator.display_name if creator else None,
        "creatorRole": creator.role.value if creator else None,
        "isExpired": row.expires_at <= now,
        "remainingUses": remaining_uses(row),
    }


def get_active_invitation(db: Session) -> Optional[InvitationToken]:
    now = utc_now()
    return (
        _token_query(db)
        .filter(InvitationToken.is_active.is_(True), InvitationToken.expires_at > now)
        .order_by(InvitationToken.created_at.desc(), InvitationToken.id.desc())
        .first()
    )


# ---------------- maintenance / misc ----------------

def cleanup_expired_tokens(db: Session) -> int:
    """Deactivates active rows that are already past expires_at. Returns the count."""
    now = utc_now()
    try:
        count = (
            db.query(InvitationToken)
            .filter(InvitationToken.is_active.is_(True), InvitationToken.expires_at <= now)
            .update({"is_active": False, "updated_at": now}, synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return count


def generate_invitation_url(token: str, base_url: Optional[str] = None) -> str:
    path = f"/login?invite={quote(token, safe='')}"
    if not base_url:
        return path
    return base_url.rstrip("/") + path


def get_invitation_error_reason(error_code: Optional[str]) -> str:
    """Validation code -> reason shown on the /error page after the LINE callback."""
    if error_code == EXPIRED:
        return "invitation_expired"
    if error_code == MAX_USES_EXCEEDED:
        return "invitation_exhausted"
    if error_code == INACTIVE:
        return "invitation_inactive"
    return "invitation_invalid"
