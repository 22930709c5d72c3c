"""Run the chat gateway locally: ``python main.py``."""

import os

import uvicorn

from backend.core.settings import settings

if __name__ == "__main__":
    print(f"🚀 Starting {settings.APP_NAME} ({settings.APP_ENV})...")
    print("🤖 AI chat:", "✅ Enabled" if settings.AI_ENABLED else "❌ Disabled")
    print("🌐 Server: http://localhost:8000")
    print("📖 Docs: http://localhost:8000/docs")

    uvicorn.run(
        "backend.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.LOG_LEVEL.lower(),
    )
