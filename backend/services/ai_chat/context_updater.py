"""
Context Updater

The only component that reads or writes session contexts. Context is fed by
three sources, from least to most authoritative:

1. the workspace/project the client says is open (request fields)
2. heuristic mentions in the user's message ("go with the HIMS project")
3. the command the assistant decided to run
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Sequence

import structlog

from .collaborators import ProjectLookup, WorkspaceLookup
from .context_store import ContextStore, SessionContext
from .slugs import slugify

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SCAN_CHARS = 10000


# ============================================================================
# Heuristic mention extraction
# ============================================================================


@dataclass(frozen=True)
class MentionRule:
    """A pattern and how to turn one of its matches into a candidate name."""

    pattern: re.Pattern
    extract: Callable[[re.Match], Optional[str]] = lambda m: m.group(1)


def _rule(expr: str) -> MentionRule:
    return MentionRule(re.compile(expr, re.IGNORECASE))


WORKSPACE_RULES: Sequence[MentionRule] = (
    _rule(r"""(?:go\s+with|use|with|navigate\s+to|go\s+to)\s+workspace\s+["']([^"']+)["']?"""),
    _rule(r"""workspace\s+is\s+["']([^"']+)["']?"""),
    _rule(r"""use\s+["']?([^"'.,!?\n]+)\s+workspace["']?"""),
    _rule(r"""["']([^"']+)\s+workspace["']?"""),
    _rule(r"""in\s+(?:the\s+)?["']?([^"'.,!?\n]+)\s+workspace["']?"""),
    _rule(r"""["']?([a-zA-Z][^"'.,!?\n]*?)\s+w[uo]rkspace["']?"""),
    _rule(r"""(?:take\s+me\s+to|navigate\s+to|go\s+to)\s+["']?([^"'.,!?\n]+)["']?(?:\s+workspace)?"""),
)

PROJECT_RULES: Sequence[MentionRule] = (
    # "Ok, go with HIMS project"
    _rule(r"""(?:ok,?\s+)?(?:go\s+with|use|with|navigate\s+to|go\s+to)\s+["']?([^"'.,!?\n]+?)\s+project["']?"""),
    # "I choose hims"
    _rule(r"""(?:i\s+)?(?:choose|select|pick)\s+["']?([^"'.,!?\n]+)["']?"""),
    # "project is HIMS"
    _rule(r"""project\s+is\s+["']?([^"'.,!?\n]+)["']?"""),
    # "HIMS project"
    _rule(r"""["']?([^"'.,!?\n\s]+)\s+project["']?"""),
    # "in HIMS project"
    _rule(r"""in\s+(?:the\s+)?["']?([^"'.,!?\n]+?)\s+project["']?"""),
    # "take me to project HIMS"
    _rule(r"""(?:take\s+me\s+to|navigate\s+to|go\s+to)\s+project\s+["']?([^"'.,!?\n]+)["']?"""),
)

SKIP_WORDS = frozenset(
    {
        "yes", "no", "ok", "fine", "good", "sure", "right", "correct", "thanks",
        "thank you", "the", "a", "an", "and", "or", "but", "with", "without",
        "please", "help",
    }
)
SKIP_PHRASES = (
    "i want to create a task drink water",
    "can you first list the projects sot hat i can choose",
)
SKIP_PREFIXES = ("i want to", "can you")


def _is_conversational(candidate: str) -> bool:
    lowered = candidate.lower()
    if lowered in SKIP_WORDS or lowered.startswith(SKIP_PREFIXES):
        return True
    if any(phrase in lowered for phrase in SKIP_PHRASES):
        return True
    return all(word in SKIP_WORDS for word in lowered.split())


def _is_workspace_collision(candidate: str) -> bool:
    lowered = candidate.lower()
    return "workspace" in lowered or "wokspace" in lowered


def first_mention(
    text: str,
    rules: Iterable[MentionRule],
    reject: Callable[[str], bool] = lambda _: False,
) -> Optional[str]:
    """First candidate, in rule order then match order, that ``reject`` keeps."""
    for rule in rules:
        for match in rule.pattern.finditer(text):
            raw = rule.extract(match)
            candidate = raw.strip() if raw else ""
            if candidate and not reject(candidate):
                return candidate
    return None


class HeuristicContextExtractor:
    """Best-effort workspace/project mentions in free text. Approximate by nature."""

    def __init__(
        self,
        workspace_rules: Sequence[MentionRule] = WORKSPACE_RULES,
        project_rules: Sequence[MentionRule] = PROJECT_RULES,
        max_chars: int = DEFAULT_MAX_SCAN_CHARS,
    ):
        self.workspace_rules = workspace_rules
        self.project_rules = project_rules
        self.max_chars = max_chars

    def workspace_mention(self, message: str) -> Optional[str]:
        return first_mention(message[: self.max_chars], self.workspace_rules)

    def project_mention(self, message: str) -> Optional[str]:
        return first_mention(
            message[: self.max_chars],
            self.project_rules,
            reject=lambda c: _is_workspace_collision(c) or _is_conversational(c),
        )

    def apply(self, context: SessionContext, message: str) -> bool:
        """Update ``context`` in place; True when anything changed."""
        text = message[: self.max_chars]
        updated = False

        workspace = self.workspace_mention(text)
        if workspace:
            context.workspace_name = workspace
            # A workspace switch drops the project unless one is named too
            if "project" not in text.lower():
                context.clear_project()
            updated = True

        project = self.project_mention(text)
        if project:
            context.project_slug = slugify(project)
            context.project_name = project
            updated = True

        if updated:
            context.touch()
        return updated


# ============================================================================
# Context updater
# ============================================================================


CommandRule = Callable[[SessionContext, Dict[str, Any]], Awaitable[None]]

# Commands that never run inside a workspace
WORKSPACE_FREE_COMMANDS = frozenset({"listWorkspaces", "createWorkspace"})


class ContextUpdater:
    def __init__(
        self,
        store: ContextStore,
        workspaces: WorkspaceLookup,
        projects: ProjectLookup,
        extractor: Optional[HeuristicContextExtractor] = None,
    ):
        self.store = store
        self.workspaces = workspaces
        self.projects = projects
        self.extractor = extractor or HeuristicContextExtractor()
        self._rules: Dict[str, CommandRule] = {
            "navigateToWorkspace": self._on_navigate_to_workspace,
            "createWorkspace": self._on_create_workspace,
            "navigateToProject": self._on_navigate_to_project,
            "createProject": self._on_create_project,
            "editWorkspace": self._on_edit_workspace,
        }

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    async def load(self, session_id: str) -> SessionContext:
        """Fetch the session's context, creating an empty one on first use."""
        context = await self.store.get(session_id)
        if context is None:
            context = SessionContext(session_id=session_id)
            await self.store.set(context)
            logger.info("Created chat session context", session_id=session_id)
        return context

    async def save(self, context: SessionContext) -> None:
        await self.store.set(context)

    async def clear(self, session_id: str) -> bool:
        removed = await self.store.delete(session_id)
        logger.info("Cleared chat session context", session_id=session_id, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Request and message driven updates
    # ------------------------------------------------------------------

    def apply_request(
        self,
        context: SessionContext,
        workspace_slug: Optional[str] = None,
        project_slug: Optional[str] = None,
    ) -> bool:
        changed = False
        if workspace_slug:
            context.switch_workspace(workspace_slug)
            changed = True
        if project_slug:
            context.project_slug = project_slug
            changed = True
        if changed:
            context.touch()
        return changed

    def observe_message(self, context: SessionContext, message: str) -> bool:
        updated = self.extractor.apply(context, message)
        if updated:
            logger.debug(
                "Context updated from message",
                session_id=context.session_id,
                workspace_name=context.workspace_name,
                project_slug=context.project_slug,
            )
        return updated

    # ------------------------------------------------------------------
    # Command driven updates
    # ------------------------------------------------------------------

    @staticmethod
    def auto_fill(context: SessionContext, name: str, parameters: Dict[str, Any]) -> None:
        """Fill workspace/project slugs the assistant left out from context."""
        if name not in WORKSPACE_FREE_COMMANDS:
            if not parameters.get("workspaceSlug") and context.workspace_slug:
                parameters["workspaceSlug"] = context.workspace_slug

        if "Task" in name or "Project" in name:
            if (
                not parameters.get("projectSlug")
                and context.project_slug
                and parameters.get("workspaceSlug") == context.workspace_slug
            ):
                parameters["projectSlug"] = context.project_slug

    async def apply_command(
        self, context: SessionContext, name: str, parameters: Dict[str, Any]
    ) -> None:
        """Apply the side effects of ``name`` to the context and persist it."""
        rule = self._rules.get(name)
        if rule is not None:
            await rule(context, parameters)
        context.touch()
        await self.save(context)
        logger.info(
            "Context updated from command",
            session_id=context.session_id,
            command=name,
            workspace_slug=context.workspace_slug,
            project_slug=context.project_slug,
        )

    async def _on_navigate_to_workspace(
        self, context: SessionContext, params: Dict[str, Any]
    ) -> None:
        slug = params.get("workspaceSlug")
        if not slug:
            return
        try:
            workspace_id = await self.workspaces.get_id_by_slug(slug)
            siblings = await self.projects.get_all_slugs_by_workspace_id(workspace_id or "")
        except Exception as e:
            logger.warning(
                "Project list lookup failed", session_id=context.session_id, error=str(e)
            )
            siblings = []
        context.sibling_project_slugs = list(siblings)
        context.workspace_slug = slug
        context.workspace_name = params.get("workspaceName") or slug
        context.clear_project()

    async def _on_create_workspace(
        self, context: SessionContext, params: Dict[str, Any]
    ) -> None:
        name = params.get("name")
        if not name:
            return
        context.workspace_slug = slugify(name)
        context.workspace_name = str(name)
        context.sibling_project_slugs = []
        context.clear_project()

    async def _on_create_project(
        self, context: SessionContext, params: Dict[str, Any]
    ) -> None:
        name = params.get("name")
        project_slug = params.get("projectSlug")
        self._adopt_workspace(context, params)
        # Creation: the slug derived from the new name wins
        context.project_slug = slugify(name) if name else project_slug
        context.project_name = name or project_slug

    async def _on_navigate_to_project(
        self, context: SessionContext, params: Dict[str, Any]
    ) -> None:
        name = params.get("name")
        project_slug = params.get("projectSlug")
        self._adopt_workspace(context, params)
        # Navigation: an explicit slug wins
        context.project_slug = project_slug or (slugify(name) if name else None)
        context.project_name = project_slug or name

    @staticmethod
    def _adopt_workspace(context: SessionContext, params: Dict[str, Any]) -> None:
        workspace_slug = params.get("workspaceSlug")
        if workspace_slug:
            context.switch_workspace(workspace_slug)

    async def _on_edit_workspace(
        self, context: SessionContext, params: Dict[str, Any]
    ) -> None:
        updates = params.get("updates")
        if not isinstance(updates, dict) or not updates.get("name"):
            return
        if params.get("workspaceSlug"):
            context.switch_workspace(params["workspaceSlug"])
            context.workspace_name = updates["name"]
