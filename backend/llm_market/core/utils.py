from __future__ import annotations
import uuid
from datetime import datetime, timezone, timedelta

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def generate_id(prefix: str) -> str:
    """Returns ``<prefix>_<12 hex chars>``, e.g. ``session_3f9c0a1b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"

def expires_after(seconds: float, *, now: datetime | None = None) -> datetime:
    """Deadline ``seconds`` after ``now`` (UTC)."""
    return (now or utc_now()) + timedelta(seconds=seconds)

def is_past(deadline: datetime, *, now: datetime | None = None) -> bool:
    """True once ``deadline`` has been reached; feedback and idle sessions both expire this way."""
    return deadline <= (now or utc_now())
