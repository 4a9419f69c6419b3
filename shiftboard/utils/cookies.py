# shiftboard/utils/cookies.py

from __future__ import annotations

from starlette.responses import Response

from shiftboard import config

AUTH_COOKIE = "auth-token"
SESSION_COOKIE = "auth-session"


def set_auth_cookie(response: Response, token: str) -> None:
    # lax, not strict: the cookie is set on the redirect that comes back from LINE
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        max_age=config.JWT_EXPIRES_HOURS * 60 * 60,
        path="/",
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def set_session_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=value,
        max_age=config.AUTH_SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def delete_cookie(response: Response, name: str, path: str = "/") -> None:
    response.delete_cookie(
        key=name,
        path=path,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def clear_auth_cookies(response: Response) -> None:
    delete_cookie(response, AUTH_COOKIE)
    delete_cookie(response, SESSION_COOKIE)
