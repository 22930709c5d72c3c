"""
AI Chat Service

Turns one chat message into an assistant reply and, when the assistant
decided to act, a command (or chain of commands) for the web client to run.

Pipeline per message:
    check enabled -> build context -> call provider -> extract command
    -> validate params -> resolve chain -> update context -> respond

Every failure ends as ``ChatResponse(success=False, error=...)``; the only
exception allowed out is cancellation of the caller's request.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from backend.core.obs.obs_metrics import CHAT_OUTCOMES

from .chain_resolver import ChainResolver, describe_chain
from .collaborators import (
    AI_API_KEY,
    AI_API_URL,
    AI_ENABLED,
    AI_MODEL,
    ProjectLookup,
    SettingsStore,
    WorkspaceLookup,
)
from .command_catalog import CommandCatalog, load_catalog
from .command_extractor import ActionCommand, extract_command
from .completion_client import CHAT, CONNECTION_TEST, CompletionClient, is_network_failure
from .context_updater import ContextUpdater
from .errors import ChatGatewayError, CommandParseError, ConfigurationError
from .param_validator import validate_parameters
from .prompt_builder import build_system_prompt
from .providers import ChatTurn, ProviderKind, classify_provider, get_adapter
from .schemas import (
    ChatAction,
    ChatRequest,
    ChatResponse,
    ClearContextResponse,
    TestConnectionRequest,
    TestConnectionResponse,
)
from .url_guard import validate_api_url

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"
DEFAULT_MODEL = "deepseek/deepseek-chat-v3-0324:free"
DEFAULT_API_URL = "https://openrouter.ai/api/v1"

CONNECTION_TEST_PROMPT = (
    'Hello, this is a connection test. Please respond with "Connection successful."'
)
CONNECTION_OK = "Connection successful! Your AI configuration is working correctly."
EMPTY_REPLY = "Received empty response from AI provider. Please check your configuration."
CHAT_NETWORK_ERROR = "Network error. Please check your internet connection."
TEST_NETWORK_ERROR = "Network error. Please check your internet connection and API URL."


@dataclass
class ChatServiceConfig:
    temperature: float = 0.1
    chat_max_tokens: int = 500
    test_max_tokens: int = 50
    app_url: str = "http://localhost:3000"


def _to_wire(command: ActionCommand) -> ChatAction:
    return ChatAction(name=command.name, parameters=command.parameters)


def _outcome(response: ChatResponse) -> str:
    if not response.success:
        return "error"
    if response.actionChain:
        return "chain"
    if response.action:
        return "action"
    return "reply"


class AiChatService:
    def __init__(
        self,
        context: ContextUpdater,
        settings_store: SettingsStore,
        workspaces: WorkspaceLookup,
        projects: ProjectLookup,
        client: CompletionClient,
        config: Optional[ChatServiceConfig] = None,
        catalog: Optional[CommandCatalog] = None,
    ):
        self.context = context
        self.settings_store = settings_store
        self.workspaces = workspaces
        self.projects = projects
        self.client = client
        self.config = config or ChatServiceConfig()
        self.catalog = catalog or load_catalog()
        self.chains = ChainResolver(workspaces, projects)

    def _adapter(self, kind: ProviderKind):
        return get_adapter(
            kind, temperature=self.config.temperature, app_url=self.config.app_url
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, request: ChatRequest, user_id: str) -> ChatResponse:
        try:
            response = await self._chat(request, user_id)
        except ChatGatewayError as e:
            logger.warning("[AI-CHAT] Chat failed | user=%s error=%s", user_id, e.message)
            error = CHAT_NETWORK_ERROR if is_network_failure(e) else e.message
            response = ChatResponse(success=False, error=error)
        except Exception as e:
            logger.exception("[AI-CHAT] Unexpected chat failure | user=%s", user_id)
            if is_network_failure(e):
                error = CHAT_NETWORK_ERROR
            else:
                error = str(e) or "Failed to process chat request"
            response = ChatResponse(success=False, error=error)
        CHAT_OUTCOMES.labels(outcome=_outcome(response)).inc()
        return response

    async def _chat(self, request: ChatRequest, user_id: str) -> ChatResponse:
        # CheckEnabled
        enabled = await self.settings_store.get(AI_ENABLED, user_id)
        if enabled != "true":
            raise ConfigurationError(
                "AI chat is currently disabled. Please enable it in settings."
            )

        # BuildContext
        workspace_slugs = await self.workspaces.find_all_slugs(request.organizationId or "")
        session_id = request.sessionId or DEFAULT_SESSION_ID
        context = await self.context.load(session_id)
        self.context.apply_request(context, request.workspaceId, request.projectId)
        self.context.observe_message(context, request.message)
        await self.context.save(context)

        api_key = await self.settings_store.get(AI_API_KEY, user_id)
        model = await self.settings_store.get(AI_MODEL, user_id, DEFAULT_MODEL)
        raw_url = await self.settings_store.get(AI_API_URL, user_id, DEFAULT_API_URL)
        api_url = validate_api_url(raw_url) if raw_url else DEFAULT_API_URL

        kind = classify_provider(api_url)
        if not api_key and kind != ProviderKind.OLLAMA:
            raise ConfigurationError("AI API key not configured. Please set it in settings.")

        messages: List[ChatTurn] = [
            ChatTurn(role="system", content=build_system_prompt(context, workspace_slugs, self.catalog))
        ]
        messages.extend(ChatTurn(role=h.role, content=h.content) for h in request.history)
        messages.append(ChatTurn(role="user", content=request.message))

        # CallProvider
        adapter = self._adapter(kind)
        outbound = adapter.build_request(
            api_url, messages, model or DEFAULT_MODEL, self.config.chat_max_tokens, api_key
        )
        reply = await self.client.complete(adapter, outbound, purpose=CHAT)

        # ExtractCommand
        try:
            command = extract_command(reply)
        except CommandParseError as e:
            logger.warning(
                "[AI-CHAT] Dropping unparseable command | session=%s command=%s error=%s",
                session_id,
                e.command_name,
                e.message,
            )
            command = None

        if command is None:
            return ChatResponse(message=reply, success=True)

        # ValidateParams
        validation = validate_parameters(command.name, command.parameters, self.catalog)
        if not validation.valid:
            logger.info(
                "[AI-CHAT] Command withheld | session=%s command=%s missing=%s",
                session_id,
                command.name,
                validation.missing,
            )
            return ChatResponse(
                message=f"{reply}\n\n{validation.clarification()}", success=True
            )

        self.context.auto_fill(context, command.name, command.parameters)
        if command.name == "navigateToProject":
            reply = await self._resolve_project_slug(command, reply)

        # ResolveChain
        chain = await self.chains.build_command_chain(command.name, command.parameters)
        if chain:
            last = chain[-1]
            await self.context.apply_command(context, last.name, last.parameters)
            logger.info(
                "[AI-CHAT] Resolved command chain | session=%s steps=%s",
                session_id,
                [c.name for c in chain],
            )
            return ChatResponse(
                message=f"{reply}\n\n {describe_chain(chain)}",
                actionChain=[_to_wire(c) for c in chain],
                success=True,
            )

        # UpdateContext
        await self.context.apply_command(context, command.name, command.parameters)
        return ChatResponse(message=reply, action=_to_wire(command), success=True)

    async def _resolve_project_slug(self, command: ActionCommand, reply: str) -> str:
        """Swap the model's project guess for a real slug and say what happened."""
        match = await self.projects.validate_project_slug(
            str(command.parameters.get("projectSlug") or "")
        )
        if match.status == "exact":
            command.parameters["projectSlug"] = match.slug
            return f"✅ Great! I found the project **{match.slug}**. Taking you there now."
        if match.status == "fuzzy":
            command.parameters["projectSlug"] = match.slug
            return (
                "🤔 I couldn't find an exact match, but I found something close: "
                f"**{match.slug}**. Navigating there for you."
            )
        command.parameters["projectSlug"] = ""
        return (
            "⚠️ I couldn't find any project matching that name.\n"
            "Try again with a different project name, or use **list all projects** "
            "to see what's available."
        )

    # ------------------------------------------------------------------
    # Connection test
    # ------------------------------------------------------------------

    async def test_connection(self, request: TestConnectionRequest) -> TestConnectionResponse:
        """Probe a provider configuration before it is saved. Never raises."""
        api_key = request.apiKey.get_secret_value() if request.apiKey else ""
        try:
            api_url = validate_api_url(request.apiUrl)
            kind = classify_provider(api_url)
            if not api_key and kind != ProviderKind.OLLAMA:
                return TestConnectionResponse(
                    success=False, error="API key is required for this provider."
                )

            adapter = self._adapter(kind)
            outbound = adapter.build_request(
                api_url,
                [ChatTurn(role="user", content=CONNECTION_TEST_PROMPT)],
                request.model,
                self.config.test_max_tokens,
                api_key,
            )
            reply = await self.client.complete(adapter, outbound, purpose=CONNECTION_TEST)
        except ChatGatewayError as e:
            logger.warning("[AI-CHAT] Connection test failed | error=%s", e.message)
            if is_network_failure(e):
                return TestConnectionResponse(success=False, error=TEST_NETWORK_ERROR)
            return TestConnectionResponse(success=False, error=e.message)
        except Exception as e:
            logger.exception("[AI-CHAT] Connection test crashed")
            if is_network_failure(e):
                return TestConnectionResponse(success=False, error=TEST_NETWORK_ERROR)
            return TestConnectionResponse(
                success=False,
                error=str(e) or "Connection test failed. Please check your configuration.",
            )

        if not reply:
            return TestConnectionResponse(success=False, error=EMPTY_REPLY)
        logger.info("[AI-CHAT] Connection test succeeded | provider=%s", kind.value)
        return TestConnectionResponse(success=True, message=CONNECTION_OK)

    # ------------------------------------------------------------------
    # Session clear
    # ------------------------------------------------------------------

    async def clear_context(self, session_id: str) -> ClearContextResponse:
        await self.context.clear(session_id)
        return ClearContextResponse(success=True)
