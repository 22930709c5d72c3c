"""Pytest configuration shared by the unit tests.

Settings are read from the environment at import time, so test defaults are
set here before anything under ``backend`` is imported.
"""

import os

os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AI_ENABLED", "false")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")

import pytest  # noqa: E402

from backend.services.ai_chat.collaborators import InMemoryDirectory  # noqa: E402
from backend.services.ai_chat.context_store import InMemoryContextStore  # noqa: E402


@pytest.fixture
def store() -> InMemoryContextStore:
    return InMemoryContextStore()


@pytest.fixture
def directory() -> InMemoryDirectory:
    """Workspaces 'marketing' (projects: website, launch) and 'backend' (core)."""
    d = InMemoryDirectory()
    d.add_workspace("marketing", organization_id="org-1", projects=["website", "launch"])
    d.add_workspace("backend", organization_id="org-1", projects=["core"])
    return d
