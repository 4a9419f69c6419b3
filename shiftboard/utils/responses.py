# shiftboard/utils/responses.py
# Uniform response envelope: { success, data, count?, message, error }.

from __future__ import annotations

from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


def ok(data: Any = None, *, count: Optional[int] = None, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if count is not None:
        body["count"] = count
    body["message"] = message
    body["error"] = None
    return body


def error_body(error: str) -> dict:
    return {"success": False, "data": None, "message": None, "error": error}


def _detail_to_text(detail: Any) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict):
        return str(detail.get("message") or detail.get("code") or detail)
    return str(detail)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(_detail_to_text(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(f"Validation failed: {', '.join(parts)}"),
    )
