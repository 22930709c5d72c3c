"""
Session context storage for the AI chat gateway.

A session context remembers which workspace and project the conversation is
about so follow-up messages ("add a task called X") can be resolved without
repeating them.

Two implementations share one interface:
- InMemoryContextStore: single process, dev and tests
- RedisContextStore: shared between server instances, expiry via key TTL
"""

from __future__ import annotations

import abc
import json
import threading
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SessionContext:
    """What the conversation in one chat session currently points at."""

    session_id: str
    workspace_slug: Optional[str] = None
    workspace_name: Optional[str] = None
    project_slug: Optional[str] = None
    project_name: Optional[str] = None
    sibling_project_slugs: List[str] = field(default_factory=list)
    last_updated: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_updated = time.time()

    def clear_project(self) -> None:
        self.project_slug = None
        self.project_name = None

    def switch_workspace(self, slug: str) -> bool:
        """Point at ``slug``; leaving another workspace drops its project and siblings."""
        changed = bool(self.workspace_slug) and self.workspace_slug != slug
        if changed:
            self.clear_project()
            self.sibling_project_slugs = []
        self.workspace_slug = slug
        return changed

    def has_selection(self) -> bool:
        return bool(self.workspace_slug or self.project_slug)

    def copy(self) -> "SessionContext":
        return replace(self, sibling_project_slugs=list(self.sibling_project_slugs))

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "SessionContext":
        data = json.loads(raw)
        return cls(
            session_id=data["session_id"],
            workspace_slug=data.get("workspace_slug"),
            workspace_name=data.get("workspace_name"),
            project_slug=data.get("project_slug"),
            project_name=data.get("project_name"),
            sibling_project_slugs=list(data.get("sibling_project_slugs") or []),
            last_updated=float(data.get("last_updated") or time.time()),
        )


class ContextStore(abc.ABC):
    """Key-value store of session contexts."""

    @abc.abstractmethod
    async def get(self, session_id: str) -> Optional[SessionContext]:
        """Return a copy of the stored context, or None."""
        ...

    @abc.abstractmethod
    async def set(self, context: SessionContext) -> None:
        """Insert or replace the context for ``context.session_id``."""
        ...

    @abc.abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove a session; True when something was removed."""
        ...

    @abc.abstractmethod
    async def sweep_older_than(self, max_age_sec: float, now: Optional[float] = None) -> int:
        """Drop contexts idle for longer than ``max_age_sec``; returns the count."""
        ...

    async def ping(self) -> None:
        """Raise if the backing store is unusable."""
        return None

    async def close(self) -> None:
        return None


class InMemoryContextStore(ContextStore):
    """
    Process-local store.

    A plain dict guarded by a lock: request handlers and the sweep task may
    touch it concurrently. Writes for the same session are last-write-wins.
    """

    def __init__(self) -> None:
        self._contexts: Dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    async def get(self, session_id: str) -> Optional[SessionContext]:
        with self._lock:
            ctx = self._contexts.get(session_id)
            return ctx.copy() if ctx else None

    async def set(self, context: SessionContext) -> None:
        with self._lock:
            self._contexts[context.session_id] = context.copy()

    async def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._contexts.pop(session_id, None) is not None

    async def sweep_older_than(self, max_age_sec: float, now: Optional[float] = None) -> int:
        cutoff = (now if now is not None else time.time()) - max_age_sec
        with self._lock:
            expired = [
                sid for sid, ctx in self._contexts.items() if ctx.last_updated < cutoff
            ]
            for sid in expired:
                del self._contexts[sid]
        if expired:
            logger.info("Swept idle chat contexts", removed=len(expired))
        return len(expired)


class RedisContextStore(ContextStore):
    """
    Redis backed store for multi-instance deployments.

    Each context is a JSON string under ``{prefix}{session_id}`` with a key TTL,
    so Redis expires idle sessions itself and the sweep has nothing to do.
    """

    def __init__(self, url: str, ttl_sec: int = 3600, prefix: str = "ai-chat:context:"):
        self._url = url
        self._ttl = ttl_sec
        self._prefix = prefix
        self._redis = None

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def _ensure(self):
        """Ensure Redis connection pool is initialized."""
        if self._redis is None:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=10,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            logger.info("Redis context store connected", url=self._url)
        return self._redis

    async def get(self, session_id: str) -> Optional[SessionContext]:
        r = await self._ensure()
        raw = await r.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return SessionContext.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Discarding unreadable chat context", session_id=session_id, error=str(e)
            )
            await r.delete(self._key(session_id))
            return None

    async def set(self, context: SessionContext) -> None:
        r = await self._ensure()
        await r.set(self._key(context.session_id), context.to_json(), ex=self._ttl)

    async def delete(self, session_id: str) -> bool:
        r = await self._ensure()
        return bool(await r.delete(self._key(session_id)))

    async def sweep_older_than(self, max_age_sec: float, now: Optional[float] = None) -> int:
        # Key TTLs already bound the lifetime of every context
        return 0

    async def ping(self) -> None:
        r = await self._ensure()
        await r.ping()

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
