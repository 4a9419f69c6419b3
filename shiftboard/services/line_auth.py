# shiftboard/services/line_auth.py
"""
LINE Login (OAuth 2.1) client: authorize URL, state check, code -> access token, profile.

executeLineAuthFlow-style entry point: execute_line_auth_flow() never raises for
provider errors, it returns LineAuthResult(success=False, error=...).
"""

from __future__ import annotations

import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import requests

from shiftboard import config

log = logging.getLogger(__name__)

AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
PROFILE_URL = "https://api.line.me/v2/profile"

_STATE_ALPHABET = string.ascii_letters + string.digits


class LineAuthError(Exception):
    pass


@dataclass
class LineProfile:
    user_id: str
    display_name: str
    picture_url: Optional[str] = None
    status_message: Optional[str] = None


@dataclass
class LineAuthResult:
    success: bool
    profile: Optional[LineProfile] = None
    error: Optional[str] = None


def generate_state(length: int = 32) -> str:
    return "".join(secrets.choice(_STATE_ALPHABET) for _ in range(length))


def generate_line_auth_url(state: str, disable_auto_login: bool = False) -> str:
    params = {
        "response_type": "code",
        "client_id": config.LINE_CHANNEL_ID,
        "redirect_uri": config.LINE_CALLBACK_URL,
        "state": state,
        "scope": "profile openid",
        "ui_locales": "ja-JP",
    }
    # after logout LINE would otherwise sign the user straight back in
    if disable_auto_login:
        params["disable_auto_login"] = "true"
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def validate_state(received_state: Optional[str], expected_state: Optional[str]) -> bool:
    if not received_state or not expected_state:
        return False
    return hmac.compare_digest(received_state.encode(), expected_state.encode())


def exchange_code_for_token(code: str) -> str:
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": config.LINE_CALLBACK_URL,
        "client_id": config.LINE_CHANNEL_ID,
        "client_secret": config.LINE_CHANNEL_SECRET,
    }
    try:
        resp = requests.post(
            TOKEN_URL,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=config.LINE_HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise LineAuthError(f"Token exchange error: {e}")

    if not resp.ok:
        raise LineAuthError(f"Token exchange failed: {resp.status_code} {resp.text}")

    access_token = (resp.json() or {}).get("access_token")
    if not access_token:
        raise LineAuthError("Access token not found in response")
    return access_token


def get_line_user_profile(access_token: str) -> LineProfile:
    try:
        resp = requests.get(
            PROFILE_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=config.LINE_HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise LineAuthError(f"Profile fetch error: {e}")

    if not resp.ok:
        raise LineAuthError(f"Profile fetch failed: {resp.status_code} {resp.text}")

    data = resp.json() or {}
    if not data.get("userId") or not data.get("displayName"):
        raise LineAuthError("Invalid profile data: missing required fields")

    return LineProfile(
        user_id=data["userId"],
        display_name=data["displayName"],
        picture_url=data.get("pictureUrl") or None,
        status_message=data.get("statusMessage") or None,
    )


def execute_line_auth_flow(code: str, received_state: str, expected_state: str) -> LineAuthResult:
    if not validate_state(received_state, expected_state):
        return LineAuthResult(False, error="Invalid state parameter - possible CSRF attack")

    try:
        access_token = exchange_code_for_token(code)
        profile = get_line_user_profile(access_token)
    except LineAuthError as e:
        log.warning("LINE auth flow failed: %s", e)
        return LineAuthResult(False, error=str(e))

    return LineAuthResult(True, profile=profile)
