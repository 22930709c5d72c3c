from __future__ import annotations
import logging
import time
from typing import Awaitable, Callable, Optional, TypedDict

from backend.services.ai_chat.context_store import ContextStore


class CheckResult(TypedDict):
    name: str
    ok: bool
    latency_ms: int
    detail: str


async def _timed(fn: Callable[[], Awaitable[None]], name: str) -> CheckResult:
    start = time.time()
    try:
        await fn()
        return {
            "name": name,
            "ok": True,
            "latency_ms": int((time.time() - start) * 1000),
            "detail": "ok",
        }
    # A failing check must still produce a result for the load balancer.
    # Exception (not BaseException) so cancellation and SystemExit propagate.
    except Exception as e:
        logging.error(
            "Health check '%s' failed: %s: %s", name, type(e).__name__, str(e)
        )
        return {
            "name": name,
            "ok": False,
            "latency_ms": int((time.time() - start) * 1000),
            "detail": f"check failed: {type(e).__name__}",
        }


async def check_self() -> CheckResult:
    async def _noop() -> None:
        return None

    return await _timed(_noop, "self")


async def check_context_store(store: Optional[ContextStore]) -> CheckResult:
    async def _ping() -> None:
        if store is None:
            raise RuntimeError("context store not initialized")
        await store.ping()

    return await _timed(_ping, "context_store")


async def readiness_payload(store: Optional[ContextStore]) -> dict:
    checks = [await check_self(), await check_context_store(store)]
    ok = all(c["ok"] for c in checks)
    return {"ok": ok, "checks": checks}


async def liveness_payload() -> dict:
    # keep liveness ultra-simple to avoid kill-loops
    return {"ok": True, "checks": [await check_self()]}
