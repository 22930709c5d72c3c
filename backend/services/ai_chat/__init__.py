"""
AI chat gateway: free-text messages in, task application commands out.

The entry point is AiChatService (chat, connection test, session clear);
backend.api.deps wires it from application settings.
"""

from .service import AiChatService, ChatServiceConfig

__all__ = ["AiChatService", "ChatServiceConfig"]
