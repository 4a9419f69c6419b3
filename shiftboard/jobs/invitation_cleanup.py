# shiftboard/jobs/invitation_cleanup.py
# Periodic deactivation of invitations that are past expires_at.
# -----------------------------------------------------------------------------
# Expired rows already fail validation, this job only keeps is_active honest for
# listings and reports.
#
# One-off run:
#     >>> from shiftboard.jobs.invitation_cleanup import cleanup_once
#     >>> cleanup_once()
#
# Background loop (started from main.py on startup when INVITE_CLEANUP_ENABLED=1):
#     >>> start_invitation_cleanup_loop()

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from shiftboard import config
from shiftboard.db import SessionLocal
from shiftboard.services.invitations import cleanup_expired_tokens
from shiftboard.utils.dates import iso_utc, utc_now

log = logging.getLogger(__name__)


def cleanup_once(session_factory=SessionLocal) -> dict:
    """
    Opens its own session, deactivates expired invitations, returns a summary.
    """
    with session_factory() as db:
        count = cleanup_expired_tokens(db)

    summary = {"deactivated_count": count, "ran_at": iso_utc(utc_now())}
    log.info("invitation cleanup summary: %s", summary)
    return summary


async def _loop(interval_seconds: int) -> None:
    while True:
        try:
            cleanup_once()
        except Exception:
            log.exception("invitation cleanup iteration failed")
        await asyncio.sleep(interval_seconds)


def start_invitation_cleanup_loop(interval_seconds: Optional[int] = None) -> Optional[asyncio.Task]:
    """
    Schedules the loop on the running event loop; without one it does nothing.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return loop.create_task(_loop(interval_seconds or config.INVITE_CLEANUP_INTERVAL_SECONDS))
