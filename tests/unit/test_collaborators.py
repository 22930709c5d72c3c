"""Unit tests for the in-memory workspace/project directory."""

import pytest

from backend.services.ai_chat.collaborators import InMemoryDirectory


@pytest.mark.asyncio
async def test_seed_builds_workspaces_and_projects():
    d = InMemoryDirectory.from_seed("marketing=website, launch ; ;backend")

    assert await d.find_all_slugs("") == ["marketing", "backend"]
    marketing_id = await d.get_id_by_slug("marketing")
    assert await d.get_all_slugs_by_workspace_id(marketing_id) == ["website", "launch"]
    backend_id = await d.get_id_by_slug("backend")
    assert await d.get_all_slugs_by_workspace_id(backend_id) == []


@pytest.mark.asyncio
async def test_empty_seed_is_an_empty_directory():
    d = InMemoryDirectory.from_seed("")
    assert await d.find_all_slugs("") == []
    assert await d.get_id_by_slug("marketing") is None


@pytest.mark.asyncio
async def test_workspace_without_organization_is_visible_to_every_organization(directory):
    directory.add_workspace("shared")
    assert await directory.find_all_slugs("org-1") == ["marketing", "backend", "shared"]
    assert await directory.find_all_slugs("org-2") == ["shared"]
