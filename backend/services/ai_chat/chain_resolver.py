"""
Chain Resolver

Expands a create command whose parent entities do not exist yet into an
ordered list of commands, e.g. for "add task Fix API to Backend workspace,
Core project" with neither existing:

    createWorkspace(Backend) -> createProject(Core) -> createTask(Fix API)

Only ``createTask`` and ``createProject`` have prerequisites.
"""

import logging
from typing import Any, Dict, List, Optional

from .collaborators import ProjectLookup, WorkspaceLookup
from .command_extractor import ActionCommand
from .slugs import slugify

logger = logging.getLogger(__name__)

CHAINABLE_COMMANDS = frozenset({"createTask", "createProject"})


def _str(value: Any) -> str:
    return str(value) if value else ""


class ChainResolver:
    def __init__(self, workspaces: WorkspaceLookup, projects: ProjectLookup):
        self.workspaces = workspaces
        self.projects = projects

    # ------------------------------------------------------------------
    # Existence checks
    # ------------------------------------------------------------------

    async def workspace_exists(self, slug: str) -> bool:
        """
        A lookup failure counts as "does not exist": the chain then proposes
        creating the workspace and the automation layer reports the conflict.
        """
        if not slug:
            return False
        try:
            return await self.workspaces.get_id_by_slug(slug) is not None
        except Exception as e:
            logger.warning(
                "[AI-CHAIN] Workspace lookup failed, assuming missing | slug=%s error=%s",
                slug,
                e,
            )
            return False

    async def project_exists(self, workspace_slug: str, project_slug: str) -> bool:
        if not workspace_slug or not project_slug:
            return False
        try:
            workspace_id = await self.workspaces.get_id_by_slug(workspace_slug)
            if not workspace_id:
                return False
            slugs = await self.projects.get_all_slugs_by_workspace_id(workspace_id)
            return project_slug in slugs
        except Exception as e:
            logger.warning(
                "[AI-CHAIN] Project lookup failed, assuming missing | workspace=%s project=%s error=%s",
                workspace_slug,
                project_slug,
                e,
            )
            return False

    # ------------------------------------------------------------------
    # Chain building
    # ------------------------------------------------------------------

    async def build_command_chain(
        self, name: str, parameters: Dict[str, Any]
    ) -> Optional[List[ActionCommand]]:
        """
        Return the commands needed to run ``name``, prerequisites first.

        None means the command can run as is.
        """
        if name not in CHAINABLE_COMMANDS:
            return None

        workspace_name = _str(parameters.get("workspaceName") or parameters.get("workspaceSlug"))
        project_name = _str(
            parameters.get("projectName")
            or parameters.get("name")
            or parameters.get("projectSlug")
        )
        workspace_slug = _str(parameters.get("workspaceSlug")) or slugify(workspace_name)
        project_slug = _str(parameters.get("projectSlug")) or slugify(project_name)

        if name == "createTask":
            return await self._chain_for_task(
                parameters, workspace_slug, workspace_name, project_slug, project_name
            )
        return await self._chain_for_project(parameters, workspace_slug, workspace_name)

    async def _chain_for_task(
        self,
        parameters: Dict[str, Any],
        workspace_slug: str,
        workspace_name: str,
        project_slug: str,
        project_name: str,
    ) -> Optional[List[ActionCommand]]:
        if not workspace_slug or not project_slug:
            return None

        task_title = _str(parameters.get("taskTitle")) or "tasks"
        chain: List[ActionCommand] = []

        workspace_exists = await self.workspace_exists(workspace_slug)
        if not workspace_exists:
            chain.append(
                ActionCommand(
                    name="createWorkspace",
                    parameters={
                        "name": workspace_name or workspace_slug,
                        "description": f"Workspace for {task_title}",
                    },
                )
            )

        # A workspace that is about to be created has no projects yet
        project_exists = (
            await self.project_exists(workspace_slug, project_slug)
            if workspace_exists
            else False
        )
        if not project_exists:
            chain.append(
                ActionCommand(
                    name="createProject",
                    parameters={
                        "workspaceSlug": workspace_slug,
                        "name": project_name or project_slug,
                        "description": f"Project for {task_title}",
                    },
                )
            )

        if not chain:
            return None

        chain.append(
            ActionCommand(
                name="createTask",
                parameters={
                    **parameters,
                    "workspaceSlug": workspace_slug,
                    "projectSlug": project_slug,
                },
            )
        )
        return chain

    async def _chain_for_project(
        self, parameters: Dict[str, Any], workspace_slug: str, workspace_name: str
    ) -> Optional[List[ActionCommand]]:
        if not workspace_slug or await self.workspace_exists(workspace_slug):
            return None

        return [
            ActionCommand(
                name="createWorkspace",
                parameters={
                    "name": workspace_name or workspace_slug,
                    "description": f"Workspace for {_str(parameters.get('name')) or 'projects'}",
                },
            ),
            ActionCommand(
                name="createProject",
                parameters={**parameters, "workspaceSlug": workspace_slug},
            ),
        ]


def describe_chain(chain: List[ActionCommand]) -> str:
    """One line summary shown to the user, steps joined by arrows."""
    steps = []
    for cmd in chain:
        if cmd.name == "createWorkspace":
            steps.append(f'Creating workspace "{cmd.parameters.get("name")}"')
        elif cmd.name == "createProject":
            steps.append(f'Creating project "{cmd.parameters.get("name")}"')
        elif cmd.name == "createTask":
            steps.append(f'Creating task "{cmd.parameters.get("taskTitle")}"')
        else:
            steps.append(f"Executing {cmd.name}")
    return " → ".join(steps)
