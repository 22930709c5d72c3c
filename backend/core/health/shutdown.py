from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from backend.core.settings import settings
from backend.services.ai_chat.command_catalog import load_catalog
from backend.services.ai_chat.context_sweeper import (
    start_context_sweeper,
    stop_context_sweeper,
)

logger = logging.getLogger(__name__)


async def on_startup(app: FastAPI) -> None:
    # Fail at boot rather than on the first message if the catalog is broken
    load_catalog()
    app.state.context_sweeper = start_context_sweeper(
        app.state.context_store,
        ttl_sec=settings.CHAT_CONTEXT_TTL_SEC,
        interval_sec=settings.CHAT_CONTEXT_SWEEP_INTERVAL_SEC,
    )


async def on_shutdown(app: FastAPI) -> None:
    task: Optional[asyncio.Task] = getattr(app.state, "context_sweeper", None)
    await stop_context_sweeper(task)

    # graceful close of the provider http client
    service = getattr(app.state, "chat_service", None)
    if service is not None:
        try:
            await service.client.aclose()
        except Exception as e:
            logger.warning(f"Provider client cleanup failed: {e}")

    # graceful close of redis if used
    store = getattr(app.state, "context_store", None)
    if store is not None:
        try:
            await store.close()
        except Exception as e:
            logger.warning(f"Context store cleanup failed: {e}")
