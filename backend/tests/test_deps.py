"""Tests for the dependency wiring in backend.api.deps."""

import pytest

from backend.api.deps import build_chat_service
from backend.core.settings import Settings
from backend.services.ai_chat.context_store import InMemoryContextStore


@pytest.mark.asyncio
async def test_dev_directory_comes_from_seed():
    service = build_chat_service(
        Settings(DEV_DIRECTORY_SEED="marketing=website"), store=InMemoryContextStore()
    )
    assert await service.workspaces.find_all_slugs("") == ["marketing"]
    workspace_id = await service.workspaces.get_id_by_slug("marketing")
    assert await service.projects.get_all_slugs_by_workspace_id(workspace_id) == ["website"]


@pytest.mark.asyncio
async def test_default_dev_directory_is_empty():
    service = build_chat_service(Settings(DEV_DIRECTORY_SEED=""), store=InMemoryContextStore())
    assert await service.workspaces.find_all_slugs("org-1") == []
