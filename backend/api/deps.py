"""FastAPI dependency injection providers."""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from backend.core.settings import Settings, settings as app_settings
from backend.services.ai_chat import AiChatService, ChatServiceConfig
from backend.services.ai_chat.collaborators import (
    InMemoryDirectory,
    InMemorySettingsStore,
)
from backend.services.ai_chat.completion_client import CompletionClient
from backend.services.ai_chat.context_store import (
    ContextStore,
    InMemoryContextStore,
    RedisContextStore,
)
from backend.services.ai_chat.context_updater import (
    ContextUpdater,
    HeuristicContextExtractor,
)

__all__ = [
    "make_context_store",
    "build_chat_service",
    "get_chat_service",
    "get_current_user_id",
]

logger = logging.getLogger(__name__)

DEV_USER_ID = "dev_user"


def make_context_store(settings: Settings = app_settings) -> ContextStore:
    """
    Create the session context store.

    Automatically selects Redis if REDIS_URL is set, otherwise uses in-memory.
    """
    if settings.REDIS_URL:
        logger.info("Using Redis chat context store")
        return RedisContextStore(
            settings.REDIS_URL,
            ttl_sec=settings.CHAT_CONTEXT_TTL_SEC,
            prefix=settings.CHAT_CONTEXT_KEY_PREFIX,
        )

    logger.info("Using in-memory chat context store (dev mode)")
    if settings.APP_ENV in {"production", "prod", "staging"}:
        logger.warning(
            "Production environment detected but REDIS_URL not set! "
            "Chat context will NOT be shared between server instances."
        )
    return InMemoryContextStore()


def build_chat_service(
    settings: Settings = app_settings,
    store: Optional[ContextStore] = None,
    directory: Optional[InMemoryDirectory] = None,
    settings_store: Optional[InMemorySettingsStore] = None,
    client: Optional[CompletionClient] = None,
) -> AiChatService:
    """
    Wire the chat service; collaborators default to the in-memory dev versions.

    The dev directory only knows the workspaces listed in DEV_DIRECTORY_SEED.
    With the default empty seed every workspace and project looks missing, so
    creates turn into full chains and navigateToProject reports not found.
    """
    directory = directory or InMemoryDirectory.from_seed(settings.DEV_DIRECTORY_SEED)
    updater = ContextUpdater(
        store or make_context_store(settings),
        workspaces=directory,
        projects=directory,
        extractor=HeuristicContextExtractor(max_chars=settings.CHAT_MAX_MESSAGE_SCAN_CHARS),
    )
    return AiChatService(
        context=updater,
        settings_store=settings_store or InMemorySettingsStore.from_settings(settings),
        workspaces=directory,
        projects=directory,
        client=client or CompletionClient(timeout=settings.LLM_REQUEST_TIMEOUT_SEC),
        config=ChatServiceConfig(
            temperature=settings.LLM_TEMPERATURE,
            chat_max_tokens=settings.CHAT_MAX_TOKENS,
            test_max_tokens=settings.TEST_CONNECTION_MAX_TOKENS,
            app_url=settings.APP_URL,
        ),
    )


def get_chat_service(request: Request) -> AiChatService:
    """FastAPI dependency: the service created in the application lifespan."""
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI chat service not initialized",
        )
    return service


def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Dev shim for the caller's identity.

    Authentication happens in front of this service; locally the user comes
    from the X-User-Id header or DEV_USER_ID.
    """
    user_id = x_user_id or os.getenv("DEV_USER_ID") or DEV_USER_ID
    request.state.user_id = user_id
    return user_id
