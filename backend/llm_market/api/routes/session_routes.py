from __future__ import annotations

from fastapi import APIRouter, Response

from llm_market.container import orchestrator, session_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
def create_session() -> dict[str, object]:
    session_id, _ = session_service.open_session()
    return orchestrator.view(session_id=session_id)


@router.get("/{session_id}")
def get_session(session_id: str) -> dict[str, object]:
    session_service.get_state(session_id)
    return orchestrator.view(session_id=session_id)


@router.delete("/{session_id}", status_code=204)
def delete_session(session_id: str) -> Response:
    session_service.close_session(session_id)
    return Response(status_code=204)
