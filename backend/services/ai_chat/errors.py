"""Exception types raised inside the AI chat pipeline.

The orchestrator turns every one of these into a ``{success: False, error}``
payload; nothing here is meant to reach the HTTP layer as a 500.
"""

from typing import Optional


class ChatGatewayError(Exception):
    """Base error for the chat gateway"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ChatGatewayError):
    """AI chat disabled or its settings incomplete"""

    pass


class ChatValidationError(ChatGatewayError):
    """User supplied endpoint URL or model name rejected"""

    pass


class UpstreamError(ChatGatewayError):
    """Provider answered with a non-2xx status"""

    def __init__(
        self,
        message: str,
        status_code: int,
        provider: Optional[str] = None,
        provider_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider
        self.provider_message = provider_message


class NetworkError(ChatGatewayError):
    """Provider could not be reached"""

    pass


class CommandParseError(ChatGatewayError):
    """A command marker was found but its parameters are not usable JSON"""

    def __init__(self, message: str, command_name: Optional[str] = None):
        super().__init__(message)
        self.command_name = command_name


class ProviderTimeoutError(ChatGatewayError):
    """Provider accepted the connection but did not answer in time"""

    pass
