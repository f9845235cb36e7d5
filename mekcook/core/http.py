"""
Response envelope helpers.

Successful JSON bodies carry ``status``, ``status_code`` and ``timestamp``
next to the handler's own payload, mirroring the error body shape.
"""
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


class Envelope(BaseModel):
    status: str
    status_code: int
    timestamp: datetime


def make_status(status_code: int) -> str:
    if status_code == 201:
        return "created"
    if status_code <= 300:
        return "ok"
    if status_code >= 400:
        return "error"
    return "unknown"


def envelope(status_code: int = 200, **payload: Any) -> dict[str, Any]:
    """Wrap ``payload`` with the standard status fields."""
    return {
        **payload,
        "status": make_status(status_code),
        "status_code": status_code,
        "timestamp": datetime.now(timezone.utc),
    }
