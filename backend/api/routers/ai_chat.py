"""
AI Chat API Router

Endpoints:
- POST /api/ai-chat/chat - Send a message, get a reply and an optional command
- POST /api/ai-chat/test-connection - Check provider settings before saving them
- DELETE /api/ai-chat/context/{session_id} - Forget a conversation's context

Failures inside the chat pipeline come back as ``success: false`` with an
``error`` message and HTTP 200; only malformed request bodies get a 422.
"""

from fastapi import APIRouter, Depends

from backend.api.deps import get_chat_service, get_current_user_id
from backend.services.ai_chat import AiChatService
from backend.services.ai_chat.schemas import (
    ChatRequest,
    ChatResponse,
    ClearContextResponse,
    TestConnectionRequest,
    TestConnectionResponse,
)

router = APIRouter(prefix="/api/ai-chat", tags=["ai-chat"])


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    body: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    service: AiChatService = Depends(get_chat_service),
):
    return await service.chat(body, user_id)


@router.post(
    "/test-connection",
    response_model=TestConnectionResponse,
    response_model_exclude_none=True,
)
async def test_connection(
    body: TestConnectionRequest,
    user_id: str = Depends(get_current_user_id),
    service: AiChatService = Depends(get_chat_service),
):
    """Does not require AI chat to be enabled, so users can verify first."""
    return await service.test_connection(body)


@router.delete("/context/{session_id}", response_model=ClearContextResponse)
async def clear_context(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AiChatService = Depends(get_chat_service),
):
    return await service.clear_context(session_id)
