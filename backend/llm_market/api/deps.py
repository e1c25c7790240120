from __future__ import annotations

from fastapi import Header, Response

from llm_market.container import session_service


def resolve_session_id(
    response: Response,
    x_session_id: str | None = Header(default=None, alias="X-Session-Id"),
) -> str:
    """Uses the caller's session, opening (and rehydrating) it when it is not live."""
    requested = (x_session_id or "").strip() or None
    session_id, _ = session_service.open_session(requested)
    response.headers["X-Session-Id"] = session_id
    return session_id
