"""
Interfaces of the application services the chat gateway depends on.

The gateway never owns workspaces, projects or user settings; it only looks
them up. Real deployments wire in the task application's services; the
in-memory classes below back local development and tests.
"""

from __future__ import annotations

import difflib
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Protocol

from .slugs import slugify

SlugMatchStatus = Literal["exact", "fuzzy", "not_found"]

# Settings keys read by the gateway
AI_ENABLED = "ai_enabled"
AI_API_KEY = "ai_api_key"
AI_MODEL = "ai_model"
AI_API_URL = "ai_api_url"


@dataclass(frozen=True)
class SlugMatch:
    status: SlugMatchStatus
    slug: str = ""


class WorkspaceLookup(Protocol):
    async def get_id_by_slug(self, slug: str) -> Optional[str]: ...

    async def find_all_slugs(self, organization_id: str) -> List[str]: ...


class ProjectLookup(Protocol):
    async def get_all_slugs_by_workspace_id(self, workspace_id: str) -> List[str]: ...

    async def validate_project_slug(self, candidate: str) -> SlugMatch: ...


class SettingsStore(Protocol):
    async def get(
        self, key: str, user_id: str, default: Optional[str] = None
    ) -> Optional[str]: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


@dataclass
class _Workspace:
    id: str
    slug: str
    organization_id: str
    project_slugs: List[str] = field(default_factory=list)


class InMemoryDirectory:
    """Workspaces and their projects, implementing both lookups."""

    def __init__(self, fuzzy_cutoff: float = 0.6):
        self.fuzzy_cutoff = fuzzy_cutoff
        self._workspaces: Dict[str, _Workspace] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_seed(cls, seed: str, organization_id: str = "") -> "InMemoryDirectory":
        """
        Build a directory from ``"workspace=project,project;workspace=..."``.

        A workspace without "=" has no projects. Blank entries are ignored.
        """
        directory = cls()
        for entry in (seed or "").split(";"):
            workspace, _, projects = entry.partition("=")
            workspace = workspace.strip()
            if not workspace:
                continue
            directory.add_workspace(
                workspace,
                organization_id=organization_id,
                projects=[p.strip() for p in projects.split(",") if p.strip()],
            )
        return directory

    def add_workspace(
        self, slug: str, organization_id: str = "", projects: Optional[List[str]] = None
    ) -> str:
        with self._lock:
            ws = _Workspace(
                id=str(uuid.uuid4()),
                slug=slug,
                organization_id=organization_id,
                project_slugs=list(projects or []),
            )
            self._workspaces[slug] = ws
            return ws.id

    def add_project(self, workspace_slug: str, project_slug: str) -> None:
        with self._lock:
            ws = self._workspaces.get(workspace_slug)
            if ws is None:
                raise KeyError(f"Unknown workspace: {workspace_slug}")
            if project_slug not in ws.project_slugs:
                ws.project_slugs.append(project_slug)

    async def get_id_by_slug(self, slug: str) -> Optional[str]:
        with self._lock:
            ws = self._workspaces.get(slug)
            return ws.id if ws else None

    async def find_all_slugs(self, organization_id: str) -> List[str]:
        with self._lock:
            return [
                ws.slug
                for ws in self._workspaces.values()
                if not organization_id
                or not ws.organization_id
                or ws.organization_id == organization_id
            ]

    async def get_all_slugs_by_workspace_id(self, workspace_id: str) -> List[str]:
        with self._lock:
            for ws in self._workspaces.values():
                if ws.id == workspace_id:
                    return list(ws.project_slugs)
        return []

    async def validate_project_slug(self, candidate: str) -> SlugMatch:
        wanted = slugify(candidate)
        if not wanted:
            return SlugMatch(status="not_found")
        with self._lock:
            known = [p for ws in self._workspaces.values() for p in ws.project_slugs]
        if wanted in known:
            return SlugMatch(status="exact", slug=wanted)
        close = difflib.get_close_matches(wanted, known, n=1, cutoff=self.fuzzy_cutoff)
        if close:
            return SlugMatch(status="fuzzy", slug=close[0])
        return SlugMatch(status="not_found")


class InMemorySettingsStore:
    """Per-user overrides on top of process-wide defaults."""

    def __init__(self, defaults: Optional[Dict[str, Optional[str]]] = None):
        self._defaults: Dict[str, Optional[str]] = dict(defaults or {})
        self._per_user: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "InMemorySettingsStore":
        return cls(
            {
                AI_ENABLED: "true" if settings.AI_ENABLED else "false",
                AI_API_KEY: settings.AI_API_KEY,
                AI_MODEL: settings.AI_MODEL,
                AI_API_URL: settings.AI_API_URL,
            }
        )

    def put(self, key: str, value: str, user_id: Optional[str] = None) -> None:
        with self._lock:
            if user_id is None:
                self._defaults[key] = value
            else:
                self._per_user.setdefault(user_id, {})[key] = value

    async def get(
        self, key: str, user_id: str, default: Optional[str] = None
    ) -> Optional[str]:
        with self._lock:
            value = self._per_user.get(user_id, {}).get(key)
            if value is None:
                value = self._defaults.get(key)
        return value if value is not None else default
