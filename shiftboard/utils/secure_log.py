# shiftboard/utils/secure_log.py
# Masking for values that must not reach the logs as-is (tokens, OAuth codes, secrets).

from __future__ import annotations

from typing import Any, Dict, Optional

SENSITIVE_KEYS = (
    "token",
    "secret",
    "password",
    "auth",
    "jwt",
    "code",
    "state",
    "apikey",
)

_MIN_MASK_LENGTH = 8
_EDGE = 4


def mask_value(value: Optional[str]) -> str:
    """'inv_0123...cdef' for long values, '****' for short ones."""
    if not value:
        return "****"
    if len(value) <= _MIN_MASK_LENGTH:
        return "****"
    return f"{value[:_EDGE]}...{value[-_EDGE:]}"


def mask_sensitive(data: Dict[str, Any]) -> Dict[str, Any]:
    masked = dict(data)
    for key, value in masked.items():
        low = key.lower()
        if isinstance(value, str) and any(s in low for s in SENSITIVE_KEYS):
            masked[key] = mask_value(value)
    return masked
