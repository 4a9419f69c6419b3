# shiftboard/routers/auth.py
"""
LINE Login for the staff app.

  /line/login     -> state + pending invite go into the signed 'auth-session' cookie, 302 to LINE
  /line/callback  -> LINE comes back here; existing users are signed in, new users need a valid invite
  /logout         -> clears cookies, always succeeds
  /me             -> current user

The callback never answers with JSON errors: it redirects to /error?reason=<code>.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from shiftboard import config
from shiftboard.db import get_db
from shiftboard.models.user import User
from shiftboard.schemas.auth import LoginStart
from shiftboard.schemas.user import user_to_dict
from shiftboard.services.invitations import (
    EXPIRED,
    INACTIVE,
    MAX_USES_EXCEEDED,
    NOT_FOUND,
    InvitationUsageError,
    accept_invitation,
    get_invitation_error_reason,
    validate_invitation_token,
)
from shiftboard.services.line_auth import (
    LineProfile,
    execute_line_auth_flow,
    generate_line_auth_url,
    generate_state,
)
from shiftboard.utils.auth_dep import get_auth_token_from_request, get_current_user
from shiftboard.utils.cookies import (
    SESSION_COOKIE,
    clear_auth_cookies,
    delete_cookie,
    set_auth_cookie,
    set_session_cookie,
)
from shiftboard.utils.responses import ok
from shiftboard.utils.roles import ROLE_LABELS, can_manage_invitations
from shiftboard.utils.secure_log import mask_sensitive, mask_value
from shiftboard.utils.session_token import (
    AuthSessionExpired,
    issue_auth_session,
    issue_session_token,
    parse_auth_session,
    verify_session_token,
)

log = logging.getLogger(__name__)

router = APIRouter()


# ---------------- helpers ----------------

def _safe_redirect(value: Optional[str]) -> Optional[str]:
    """Only same-site paths: '/shifts' yes, '//evil.com' and 'https://...' no."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if not value.startswith("/") or value.startswith("//") or "\\" in value:
        return None
    return value


def _error_redirect(reason: str) -> RedirectResponse:
    response = RedirectResponse(url=f"/error?reason={reason}", status_code=302)
    delete_cookie(response, SESSION_COOKIE)
    return response


def _start_login(invite_token: Optional[str], redirect_url: Optional[str]) -> RedirectResponse:
    problems = config.validate_line_auth_config()
    if problems:
        log.error("LINE authentication configuration is invalid: %s", problems)
        raise HTTPException(status_code=500, detail="Authentication service is not properly configured")

    state = generate_state(32)
    invite_token = (invite_token or "").strip() or None
    session_value = issue_auth_session(state, invite_token, _safe_redirect(redirect_url))

    response = RedirectResponse(url=generate_line_auth_url(state), status_code=302)
    set_session_cookie(response, session_value)
    log.info(
        "LINE login started (state=%s, invite=%s)",
        mask_value(state), mask_value(invite_token) if invite_token else None,
    )
    return response


def _sync_profile(db: Session, user: User, profile: LineProfile) -> User:
    changed = False
    if profile.display_name and user.display_name != profile.display_name:
        user.display_name = profile.display_name
        changed = True
    if profile.picture_url and user.picture_url != profile.picture_url:
        user.picture_url = profile.picture_url
        changed = True
    if changed:
        db.commit()
        db.refresh(user)
    return user


def _register_with_invite(db: Session, profile: LineProfile, invite_token: Optional[str]):
    """
    Returns (user, None) or (None, reason).
    """
    if not invite_token:
        return None, "invitation_required"

    validation = validate_invitation_token(db, invite_token)
    if not validation.is_valid:
        log.info("signup refused for invite %s: %s", mask_value(invite_token), validation.error_code)
        return None, get_invitation_error_reason(validation.error_code)

    try:
        user = accept_invitation(
            db,
            token=invite_token,
            line_user_id=profile.user_id,
            display_name=profile.display_name,
            picture_url=profile.picture_url,
        )
    except InvitationUsageError as e:
        log.warning("invitation consumption failed (%s): %s", e.error_code, e)
        if e.error_code in (EXPIRED, INACTIVE, NOT_FOUND, MAX_USES_EXCEEDED):
            return None, get_invitation_error_reason(e.error_code)
        return None, "user_creation_failed"
    except Exception:
        log.exception("user creation via invitation failed")
        return None, "user_creation_failed"

    return user, None


def _handle_callback(
    request: Request,
    db: Session,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
) -> RedirectResponse:
    if error:
        log.info("LINE login cancelled or rejected: %s", error)
        return _error_redirect("cancelled")
    if not code or not state:
        return _error_redirect("invalid_callback")
    log.debug("LINE callback: %s", mask_sensitive({"code": code, "state": state}))

    raw_session = request.cookies.get(SESSION_COOKIE)
    if not raw_session:
        return _error_redirect("session_expired")
    try:
        session = parse_auth_session(raw_session)
    except AuthSessionExpired:
        return _error_redirect("session_expired")
    if session is None:
        return _error_redirect("invalid_session")

    result = execute_line_auth_flow(code, state, session["state"])
    if not result.success or result.profile is None:
        return _error_redirect("auth_failed")
    profile = result.profile

    user = db.query(User).filter(User.line_user_id == profile.user_id).first()
    if user is not None:
        user = _sync_profile(db, user, profile)
    else:
        user, reason = _register_with_invite(db, profile, session.get("inviteToken"))
        if reason:
            return _error_redirect(reason)

    if not user.is_active:
        log.info("inactive user %s tried to sign in", user.id)
        return _error_redirect("inactive_user")

    response = RedirectResponse(url=_safe_redirect(session.get("redirectUrl")) or "/", status_code=302)
    set_auth_cookie(response, issue_session_token(user))
    delete_cookie(response, SESSION_COOKIE)
    log.info("user %s signed in via LINE", user.id)
    return response


# ---------------- endpoints ----------------

@router.get("/line/login")
def line_login(
    invite: Optional[str] = Query(None),
    redirect: Optional[str] = Query(None),
):
    return _start_login(invite, redirect)


@router.post("/line/login")
def line_login_post(payload: Optional[LoginStart] = Body(None)):
    payload = payload or LoginStart()
    return _start_login(payload.invite_token, payload.redirect_url)


@router.get("/line/callback")
def line_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return _handle_callback(request, db, code, state, error)
    except Exception:
        log.exception("LINE callback failed")
        return _error_redirect("system_error")


def _logged_in_user_id(request: Request) -> Optional[int]:
    token = get_auth_token_from_request(request)
    if not token:
        return None
    try:
        return verify_session_token(token)["userId"]
    except HTTPException:
        return None


@router.post("/logout")
def logout(request: Request):
    """Signing out cannot fail: cookies are cleared whatever state the token is in."""
    user_id = _logged_in_user_id(request)
    response = JSONResponse(ok(None, message="Logged out successfully"))
    clear_auth_cookies(response)
    log.info("logout (user=%s)", user_id or "unknown")
    return response


@router.get("/logout")
def logout_redirect(request: Request, redirect: Optional[str] = Query(None)):
    user_id = _logged_in_user_id(request)
    response = RedirectResponse(url=_safe_redirect(redirect) or "/", status_code=302)
    clear_auth_cookies(response)
    log.info("logout (user=%s)", user_id or "unknown")
    return response


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    data = user_to_dict(current_user)
    data["roleLabel"] = ROLE_LABELS.get(current_user.role)
    data["canManageInvitations"] = can_manage_invitations(current_user)
    return ok(data)
