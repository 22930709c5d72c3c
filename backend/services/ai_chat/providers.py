"""
Provider adapters for the AI chat gateway.

One adapter per completion API:
- OpenAI
- OpenRouter (OpenAI shape plus attribution headers)
- Anthropic (separate system field, x-api-key auth)
- Google Gemini (contents/parts shape, key as query parameter)
- Ollama and other self-hosted OpenAI-compatible servers (no auth)
- Custom endpoints (plain OpenAI shape, bearer auth)

The provider is never chosen by the user directly; it is derived from the
hostname of the configured endpoint by ``classify_provider``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type
from urllib.parse import quote

from .url_guard import host_of, hostname_matches, is_private_host, validate_model_name

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1
APP_TITLE = "Taskosaur AI Assistant"


class ProviderKind(str, Enum):
    """Completion APIs the gateway knows how to talk to"""

    OLLAMA = "ollama"
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


# Hostname suffixes of hosted providers, checked in order
KNOWN_HOSTS = (
    ("openrouter.ai", ProviderKind.OPENROUTER),
    ("api.openai.com", ProviderKind.OPENAI),
    ("api.anthropic.com", ProviderKind.ANTHROPIC),
    ("generativelanguage.googleapis.com", ProviderKind.GOOGLE),
)


@dataclass
class ChatTurn:
    """A message in the conversation"""

    role: str  # system, user, assistant
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ProviderRequest:
    """Fully shaped outbound call, ready for the HTTP client"""

    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    # Query parameters; kept apart from ``url`` so secrets never end up in logs
    params: Dict[str, str] = field(default_factory=dict)


def classify_provider(endpoint_url: str) -> ProviderKind:
    """
    Pick the provider for an endpoint from its hostname.

    Loopback and private network hosts are assumed to be self-hosted
    OpenAI-compatible servers (Ollama, LM Studio, vLLM...).
    """
    hostname = host_of(endpoint_url)
    if not hostname:
        return ProviderKind.CUSTOM

    if is_private_host(hostname):
        return ProviderKind.OLLAMA

    for domain, kind in KNOWN_HOSTS:
        if hostname_matches(hostname, domain):
            return kind
    return ProviderKind.CUSTOM


def _dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[step] if isinstance(step, int) else current.get(step)
        if current is None:
            return None
    return current


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


# ============================================================================
# Adapters
# ============================================================================


class ProviderAdapter(ABC):
    """Base adapter: turns canonical chat turns into one provider's wire format"""

    kind: ProviderKind = ProviderKind.CUSTOM
    display_name: str = "AI provider"

    def __init__(
        self,
        temperature: float = DEFAULT_TEMPERATURE,
        app_url: str = "http://localhost:3000",
        app_title: str = APP_TITLE,
    ):
        self.temperature = temperature
        self.app_url = app_url
        self.app_title = app_title

    @abstractmethod
    def build_request(
        self,
        base_url: str,
        messages: List[ChatTurn],
        model: str,
        max_tokens: int,
        api_key: Optional[str] = None,
    ) -> ProviderRequest:
        """Shape an outbound request for this provider"""
        pass

    @abstractmethod
    def parse_reply(self, data: Any) -> str:
        """Pull the assistant text out of a decoded response body"""
        pass

    def _json_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}


class OpenAICompatibleAdapter(ProviderAdapter):
    """Plain OpenAI chat/completions shape with bearer auth"""

    kind = ProviderKind.CUSTOM
    display_name = "AI provider"

    def endpoint(self, base_url: str) -> str:
        return f"{base_url}/chat/completions"

    def auth_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {api_key or ''}"}

    def sampling(self) -> Dict[str, Any]:
        """Provider specific sampling knobs merged into the body"""
        return {}

    def build_request(
        self,
        base_url: str,
        messages: List[ChatTurn],
        model: str,
        max_tokens: int,
        api_key: Optional[str] = None,
    ) -> ProviderRequest:
        headers = self._json_headers()
        headers.update(self.auth_headers(api_key))
        body: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        body.update(self.sampling())
        return ProviderRequest(url=self.endpoint(base_url), headers=headers, body=body)

    def parse_reply(self, data: Any) -> str:
        return _text(_dig(data, "choices", 0, "message", "content"))


class OpenAIAdapter(OpenAICompatibleAdapter):
    kind = ProviderKind.OPENAI
    display_name = "OpenAI"

    def sampling(self) -> Dict[str, Any]:
        return {"top_p": 0.9, "frequency_penalty": 0, "presence_penalty": 0}


class OpenRouterAdapter(OpenAIAdapter):
    kind = ProviderKind.OPENROUTER
    display_name = "OpenRouter"

    def auth_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        headers = super().auth_headers(api_key)
        # OpenRouter attributes usage to the calling app through these
        headers["HTTP-Referer"] = self.app_url
        headers["X-Title"] = self.app_title
        return headers


class OllamaAdapter(OpenAICompatibleAdapter):
    """Self-hosted models; accepts both /v1 (OpenAI) and /api (native) bases"""

    kind = ProviderKind.OLLAMA
    display_name = "Ollama"

    def endpoint(self, base_url: str) -> str:
        if "/v1" in base_url:
            if base_url.endswith("/chat/completions"):
                return base_url
            return f"{base_url}/chat/completions"
        if "/api" in base_url:
            if base_url.endswith("/chat"):
                return base_url
            return f"{base_url}/chat"
        return f"{base_url}/v1/chat/completions"

    def auth_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        return {}

    def sampling(self) -> Dict[str, Any]:
        return {"top_p": 0.9}

    def parse_reply(self, data: Any) -> str:
        text = super().parse_reply(data)
        if text:
            return text
        # Native /api/chat replies carry a single message object
        return _text(_dig(data, "message", "content"))


class AnthropicAdapter(ProviderAdapter):
    kind = ProviderKind.ANTHROPIC
    display_name = "Anthropic"
    API_VERSION = "2023-06-01"

    def build_request(
        self,
        base_url: str,
        messages: List[ChatTurn],
        model: str,
        max_tokens: int,
        api_key: Optional[str] = None,
    ) -> ProviderRequest:
        headers = self._json_headers()
        headers["x-api-key"] = api_key or ""
        headers["anthropic-version"] = self.API_VERSION

        system = next((m.content for m in messages if m.role == "system"), None)
        body: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages if m.role != "system"],
            "max_tokens": max_tokens,
            "temperature": self.temperature,
        }
        if system is not None:
            body["system"] = system
        return ProviderRequest(url=f"{base_url}/messages", headers=headers, body=body)

    def parse_reply(self, data: Any) -> str:
        return _text(_dig(data, "content", 0, "text"))


class GoogleAdapter(ProviderAdapter):
    kind = ProviderKind.GOOGLE
    display_name = "Google"

    @staticmethod
    def _role(role: str) -> str:
        # Gemini only knows "user" and "model"
        if role in ("assistant", "system"):
            return "model"
        return role

    def build_request(
        self,
        base_url: str,
        messages: List[ChatTurn],
        model: str,
        max_tokens: int,
        api_key: Optional[str] = None,
    ) -> ProviderRequest:
        # The model name lands in the URL path
        validate_model_name(model)

        url = f"{base_url}/models/{quote(str(model), safe='')}:generateContent"
        body = {
            "contents": [
                {"role": self._role(m.role), "parts": [{"text": m.content}]}
                for m in messages
            ],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        return ProviderRequest(
            url=url,
            headers=self._json_headers(),
            body=body,
            params={"key": api_key or ""},
        )

    def parse_reply(self, data: Any) -> str:
        return _text(_dig(data, "candidates", 0, "content", "parts", 0, "text"))


# ============================================================================
# Registry
# ============================================================================


_ADAPTERS: Dict[ProviderKind, Type[ProviderAdapter]] = {
    ProviderKind.OLLAMA: OllamaAdapter,
    ProviderKind.OPENROUTER: OpenRouterAdapter,
    ProviderKind.OPENAI: OpenAIAdapter,
    ProviderKind.ANTHROPIC: AnthropicAdapter,
    ProviderKind.GOOGLE: GoogleAdapter,
    ProviderKind.CUSTOM: OpenAICompatibleAdapter,
}


def register_adapter(kind: ProviderKind, adapter_cls: Type[ProviderAdapter]) -> None:
    """Install or replace the adapter used for a provider kind."""
    _ADAPTERS[kind] = adapter_cls


def get_adapter(kind: ProviderKind, **options: Any) -> ProviderAdapter:
    """Instantiate the adapter registered for ``kind``."""
    adapter_cls = _ADAPTERS.get(kind)
    if adapter_cls is None:
        raise ValueError(f"No adapter registered for provider: {kind}")
    return adapter_cls(**options)
