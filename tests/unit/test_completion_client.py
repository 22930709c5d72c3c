"""
Unit tests for the provider HTTP client.

httpx.MockTransport stands in for the provider, so these tests exercise the
real request encoding and status handling without network access.
"""

import json

import httpx
import pytest

from backend.services.ai_chat.completion_client import (
    CONNECTION_TEST,
    CompletionClient,
    is_network_failure,
    status_error_message,
)
from backend.services.ai_chat.errors import (
    NetworkError,
    ProviderTimeoutError,
    UpstreamError,
)
from backend.services.ai_chat.providers import (
    ChatTurn,
    GoogleAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
)

TURNS = [ChatTurn(role="user", content="hello")]


def _client(handler) -> CompletionClient:
    return CompletionClient(timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_posts_json_and_returns_text() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]})

    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "m", 500, "key")
    client = _client(handler)
    try:
        text = await client.complete(adapter, req)
    finally:
        await client.aclose()

    assert text == "hi there"
    assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert seen["auth"] == "Bearer key"
    assert seen["body"]["messages"] == [{"role": "user", "content": "hello"}]


@pytest.mark.asyncio
async def test_google_key_travels_as_query_parameter() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.url.params.get("key")
        seen["path"] = request.url.path
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}
        )

    adapter = GoogleAdapter()
    req = adapter.build_request(
        "https://generativelanguage.googleapis.com/v1beta", TURNS, "gemini-1.5-pro", 50, "g-key"
    )
    client = _client(handler)
    assert await client.complete(adapter, req) == "ok"
    await client.aclose()

    assert seen["key"] == "g-key"
    assert seen["path"] == "/v1beta/models/gemini-1.5-pro:generateContent"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,message",
    [
        (401, "Invalid API key. Please check your OpenRouter API key in settings."),
        (429, "Rate limit exceeded by API provider. Please try again in a moment."),
        (402, "Insufficient credits. Please check your OpenRouter account."),
    ],
)
async def test_known_statuses_map_to_messages(status, message) -> None:
    client = _client(lambda request: httpx.Response(status, json={"error": {"message": "x"}}))
    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "m", 500, "key")

    with pytest.raises(UpstreamError) as exc:
        await client.complete(adapter, req)
    await client.aclose()

    assert exc.value.status_code == status
    assert exc.value.message == message
    assert exc.value.provider == "openrouter"


@pytest.mark.asyncio
async def test_other_statuses_use_provider_error_message() -> None:
    client = _client(
        lambda request: httpx.Response(400, json={"error": {"message": "model is required"}})
    )
    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "", 500, "key")

    with pytest.raises(UpstreamError) as exc:
        await client.complete(adapter, req)
    await client.aclose()
    assert exc.value.message == "model is required"


@pytest.mark.asyncio
async def test_non_json_error_body_falls_back_to_status_message() -> None:
    client = _client(lambda request: httpx.Response(503, text="upstream down"))
    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "m", 500, "key")

    with pytest.raises(UpstreamError) as exc:
        await client.complete(adapter, req)
    await client.aclose()
    assert exc.value.message == "API request failed with status 503"


@pytest.mark.asyncio
async def test_connect_error_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    client = _client(handler)
    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "m", 500, "key")

    with pytest.raises(NetworkError) as exc:
        await client.complete(adapter, req)
    await client.aclose()
    assert is_network_failure(exc.value)


@pytest.mark.asyncio
async def test_timeout_is_reported_separately() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    adapter = OpenRouterAdapter()
    req = adapter.build_request("https://openrouter.ai/api/v1", TURNS, "m", 500, "key")

    with pytest.raises(ProviderTimeoutError) as exc:
        await client.complete(adapter, req)
    await client.aclose()
    assert "5 seconds" in exc.value.message
    assert not is_network_failure(exc.value)


def test_connection_test_status_messages() -> None:
    assert status_error_message(404, {}, "OpenAI", CONNECTION_TEST) == (
        "Model not found. Please check the model name and try again."
    )
    assert status_error_message(401, {}, "OpenAI", CONNECTION_TEST) == (
        "Invalid API key. Please check your API key and try again."
    )
    # 404 has no special meaning on the chat path
    assert status_error_message(404, {}, "OpenAI") == "API request failed with status 404"


def test_network_failure_detection_by_message() -> None:
    assert is_network_failure(RuntimeError("TypeError: Failed to fetch"))
    assert is_network_failure(OSError("[Errno -2] Name or service not known"))
    assert not is_network_failure(ValueError("bad input"))


@pytest.mark.asyncio
async def test_redirect_status_is_an_error() -> None:
    client = _client(lambda request: httpx.Response(302, json={}))
    adapter = OpenAIAdapter()
    req = adapter.build_request("https://api.openai.com/v1", TURNS, "m", 500, "key")

    with pytest.raises(UpstreamError) as exc:
        await client.complete(adapter, req)
    await client.aclose()

    assert exc.value.status_code == 302
    assert exc.value.message == "API request failed with status 302"
