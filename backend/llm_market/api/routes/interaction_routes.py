from __future__ import annotations

from fastapi import APIRouter, Depends

from llm_market.api.deps import resolve_session_id
from llm_market.container import orchestrator
from llm_market.models.schemas import InteractionMessageRequest

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.post("/message")
async def process_message(
    payload: InteractionMessageRequest,
    session_id: str = Depends(resolve_session_id),
) -> dict[str, object]:
    return await orchestrator.process_message(message=payload.content, session_id=session_id)
