# shiftboard/main.py
# FastAPI entry point for the ski school shift board backend.
#  • /api/auth         LINE Login, logout, current user
#  • /api/invitations  invitation URLs (ADMIN / MANAGER) and the public verify check
#  • /api/users        staff accounts
# Background cleanup of expired invitations starts only with INVITE_CLEANUP_ENABLED=1.

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from shiftboard import config
from shiftboard.db import engine  # noqa: F401  engine/pool initialised at import

from shiftboard.routers.auth import router as auth_router
from shiftboard.routers.invitations import router as invitations_router
from shiftboard.routers.users import router as users_router

from shiftboard.jobs.invitation_cleanup import start_invitation_cleanup_loop
from shiftboard.utils.responses import http_exception_handler, validation_exception_handler

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Shiftboard Backend",
    description="Backend for the ski school shift board: LINE Login, invitation-only registration, staff accounts.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# every error leaves in the { success, data, message, error } envelope
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(auth_router,        prefix="/api/auth",        tags=["Auth"])
app.include_router(invitations_router, prefix="/api/invitations", tags=["Invitations"])
app.include_router(users_router,       prefix="/api/users",       tags=["Users"])


@app.get("/")
def root():
    """Simple healthcheck."""
    return {"message": "Shiftboard backend is running", "docs": "/docs"}


@app.on_event("startup")
def _startup_jobs():
    if config.INVITE_CLEANUP_ENABLED:
        start_invitation_cleanup_loop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("shiftboard.main:app", host="0.0.0.0", port=8000, reload=False)
