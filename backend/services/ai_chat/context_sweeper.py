"""
Periodic eviction of idle chat session contexts.

Started from the application lifespan and cancelled on shutdown.
"""

import asyncio
from typing import Optional

import structlog

from .context_store import ContextStore

logger = structlog.get_logger(__name__)


async def context_sweep_loop(
    store: ContextStore, ttl_sec: float, interval_sec: float
) -> None:
    """
    Remove contexts idle for longer than ``ttl_sec`` every ``interval_sec``.

    A failing sweep is logged and retried on the next tick; only cancellation
    stops the loop.
    """
    logger.info(
        "[CONTEXT-SWEEP] Sweep loop started", interval_sec=interval_sec, ttl_sec=ttl_sec
    )
    while True:
        try:
            await asyncio.sleep(interval_sec)
            removed = await store.sweep_older_than(ttl_sec)
            logger.debug("[CONTEXT-SWEEP] Sweep finished", removed=removed)
        except asyncio.CancelledError:
            logger.info("[CONTEXT-SWEEP] Sweep loop cancelled")
            raise
        except Exception as e:
            logger.error("[CONTEXT-SWEEP] Error in sweep loop", error=str(e))


def start_context_sweeper(
    store: ContextStore, ttl_sec: float, interval_sec: float
) -> asyncio.Task:
    """Schedule the sweep loop on the running event loop."""
    return asyncio.create_task(
        context_sweep_loop(store, ttl_sec, interval_sec), name="chat-context-sweeper"
    )


async def stop_context_sweeper(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
