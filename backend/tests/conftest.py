"""Pytest fixtures for the chat gateway service and API tests.

Provides:
- directory: workspaces/projects the gateway can look up
- settings_store: AI settings with chat enabled and an OpenRouter key
- fake_client: CompletionClient stand-in returning scripted replies
- service: AiChatService wired to the above
"""

import os

os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AI_ENABLED", "false")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")

from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402

from backend.services.ai_chat import AiChatService  # noqa: E402
from backend.services.ai_chat.collaborators import (  # noqa: E402
    AI_API_KEY,
    AI_API_URL,
    AI_ENABLED,
    AI_MODEL,
    InMemoryDirectory,
    InMemorySettingsStore,
)
from backend.services.ai_chat.completion_client import CHAT  # noqa: E402
from backend.services.ai_chat.context_store import InMemoryContextStore  # noqa: E402
from backend.services.ai_chat.context_updater import ContextUpdater  # noqa: E402


class FakeCompletionClient:
    """Returns queued replies (or raises queued exceptions) and records calls."""

    def __init__(self, replies: Optional[List] = None):
        self.replies = list(replies or [])
        self.calls = []
        self.closed = False

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    async def complete(self, adapter, request, purpose=CHAT) -> str:
        self.calls.append({"adapter": adapter, "request": request, "purpose": purpose})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def directory() -> InMemoryDirectory:
    d = InMemoryDirectory()
    d.add_workspace("marketing", organization_id="org-1", projects=["website", "launch"])
    d.add_workspace("hospital", organization_id="org-2", projects=["hims"])
    return d


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore(
        {
            AI_ENABLED: "true",
            AI_API_KEY: "sk-or-test",
            AI_MODEL: "deepseek/deepseek-chat-v3-0324:free",
            AI_API_URL: "https://openrouter.ai/api/v1",
        }
    )


@pytest.fixture
def context_store() -> InMemoryContextStore:
    return InMemoryContextStore()


@pytest.fixture
def fake_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def service(context_store, directory, settings_store, fake_client) -> AiChatService:
    return AiChatService(
        context=ContextUpdater(context_store, directory, directory),
        settings_store=settings_store,
        workspaces=directory,
        projects=directory,
        client=fake_client,
    )
