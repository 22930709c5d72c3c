"""Application settings and configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "Task Command Gateway"
    APP_ENV: str = "dev"
    # Sent as HTTP-Referer to OpenRouter, which attributes traffic per app
    APP_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Comma separated list of allowed browser origins
    CORS_ORIGINS: str = "http://localhost:3000"

    # Redis configuration. When unset, chat context lives in process memory.
    REDIS_URL: str | None = None
    CHAT_CONTEXT_KEY_PREFIX: str = "ai-chat:context:"

    # Session context lifetime
    # NOTE: the sweep only removes entries older than the TTL, so an entry can
    # live up to TTL + SWEEP_INTERVAL before it disappears from memory.
    CHAT_CONTEXT_TTL_SEC: int = 3600
    CHAT_CONTEXT_SWEEP_INTERVAL_SEC: int = 3600

    # Longest prefix of a user message scanned for workspace/project mentions
    CHAT_MAX_MESSAGE_SCAN_CHARS: int = 10000

    # Provider call shaping
    LLM_REQUEST_TIMEOUT_SEC: float = 30.0
    LLM_TEMPERATURE: float = 0.1
    CHAT_MAX_TOKENS: int = 500
    TEST_CONNECTION_MAX_TOKENS: int = 50

    # Defaults for the development settings store. Real deployments keep these
    # per user in the settings service.
    AI_ENABLED: bool = False
    AI_API_KEY: str | None = None
    AI_MODEL: str = "deepseek/deepseek-chat-v3-0324:free"
    AI_API_URL: str = "https://openrouter.ai/api/v1"

    # Workspaces and projects for the in-memory dev directory, e.g.
    # "marketing=website,launch;backend=core". Empty means no workspaces exist,
    # so every createTask resolves to a full creation chain.
    DEV_DIRECTORY_SEED: str = ""

    # Pydantic v2 settings: ignore unknown/extra env vars coming from .env
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


# Global settings instance
settings = Settings()

# Fail fast on timing values that would make the sweep spin or never expire.
if settings.CHAT_CONTEXT_TTL_SEC <= 0:
    raise ValueError(
        f"Invalid context timing: CHAT_CONTEXT_TTL_SEC={settings.CHAT_CONTEXT_TTL_SEC} must be > 0"
    )
if settings.CHAT_CONTEXT_SWEEP_INTERVAL_SEC <= 0:
    raise ValueError(
        "Invalid context timing: CHAT_CONTEXT_SWEEP_INTERVAL_SEC="
        f"{settings.CHAT_CONTEXT_SWEEP_INTERVAL_SEC} must be > 0"
    )
