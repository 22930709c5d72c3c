"""
HTTP execution of provider requests.

Adapters only shape requests; this module sends them, enforces the timeout,
and maps failures onto the gateway's error types with user facing messages.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

import httpx

from backend.core.obs.obs_metrics import PROVIDER_LATENCY

from .errors import NetworkError, ProviderTimeoutError, UpstreamError
from .providers import ProviderAdapter, ProviderRequest

logger = logging.getLogger(__name__)

CHAT = "chat"
CONNECTION_TEST = "connection_test"

# Substrings of transport failures that should read as "you are offline"
NETWORK_FAILURE_MARKERS = (
    "Failed to fetch",
    "NetworkError",
    "Connection refused",
    "Name or service not known",
)


def _chat_status_message(status: int, provider_label: str) -> Optional[str]:
    if status == 401:
        return f"Invalid API key. Please check your {provider_label} API key in settings."
    if status == 429:
        return "Rate limit exceeded by API provider. Please try again in a moment."
    if status == 402:
        return f"Insufficient credits. Please check your {provider_label} account."
    return None


_CONNECTION_TEST_MESSAGES = {
    401: "Invalid API key. Please check your API key and try again.",
    429: "Rate limit exceeded. Please try again in a moment.",
    402: "Insufficient credits. Please check your account balance.",
    404: "Model not found. Please check the model name and try again.",
}


def _parse_error_body(response: httpx.Response) -> Any:
    """Best-effort parse of provider error body for actionable diagnostics."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _provider_error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
    return None


def status_error_message(
    status: int, body: Any, provider_label: str, purpose: str = CHAT
) -> str:
    """User facing text for a non-2xx provider response."""
    if purpose == CONNECTION_TEST:
        mapped = _CONNECTION_TEST_MESSAGES.get(status)
    else:
        mapped = _chat_status_message(status, provider_label)
    if mapped:
        return mapped
    return _provider_error_message(body) or f"API request failed with status {status}"


def is_network_failure(exc: BaseException) -> bool:
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, httpx.TransportError) and not isinstance(
        exc, httpx.TimeoutException
    ):
        return True
    text = str(exc)
    return any(marker in text for marker in NETWORK_FAILURE_MARKERS)


class CompletionClient:
    """Sends shaped provider requests over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            with self._lock:
                # Double-check locking pattern
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        timeout=httpx.Timeout(self.timeout),
                        limits=httpx.Limits(
                            max_keepalive_connections=5, max_connections=20
                        ),
                        transport=self._transport,
                    )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        adapter: ProviderAdapter,
        request: ProviderRequest,
        purpose: str = CHAT,
    ) -> str:
        """
        POST the request and return the assistant text.

        Raises:
            UpstreamError: provider answered with a non-2xx status
            NetworkError: provider unreachable
            ProviderTimeoutError: no answer within the configured timeout
        """
        provider = adapter.kind.value
        logger.info(
            "[AI-CHAT] Calling provider | provider=%s url=%s purpose=%s",
            provider,
            request.url,
            purpose,
        )

        start = time.monotonic()
        try:
            response = await self._get_client().post(
                request.url,
                headers=request.headers,
                json=request.body,
                params=request.params or None,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "[AI-CHAT] Provider timed out | provider=%s timeout=%ss",
                provider,
                self.timeout,
            )
            raise ProviderTimeoutError(
                f"AI provider did not respond within {self.timeout:g} seconds."
            ) from e
        except httpx.TransportError as e:
            logger.warning(
                "[AI-CHAT] Provider unreachable | provider=%s error=%s",
                provider,
                type(e).__name__,
            )
            raise NetworkError(str(e) or type(e).__name__) from e

        PROVIDER_LATENCY.labels(
            provider=provider, status=str(response.status_code)
        ).observe(time.monotonic() - start)

        if not response.is_success:
            body = _parse_error_body(response)
            logger.warning(
                "[AI-CHAT] Provider error | provider=%s status=%s body=%s",
                provider,
                response.status_code,
                str(body)[:200],
            )
            raise UpstreamError(
                status_error_message(
                    response.status_code, body, adapter.display_name, purpose
                ),
                status_code=response.status_code,
                provider=provider,
                provider_message=_provider_error_message(body),
            )

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as e:
            raise UpstreamError(
                "AI provider returned a response that is not valid JSON.",
                status_code=response.status_code,
                provider=provider,
            ) from e

        return adapter.parse_reply(data)
