from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ---- Observability imports ----
from backend.core.obs.obs_logging import configure_json_logging, logger
from backend.core.obs.obs_metrics import metrics_app, PROM_ENABLED
from backend.core.obs.obs_middleware import ObservabilityMiddleware

from backend.core.health.router import router as health_router
from backend.core.health.shutdown import on_startup, on_shutdown

from backend.core.settings import settings

from .deps import build_chat_service, make_context_store
from .routers.ai_chat import router as ai_chat_router

configure_json_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: context store, chat service and the sweep task."""
    store = make_context_store(settings)
    app.state.context_store = store
    app.state.chat_service = build_chat_service(settings, store=store)
    await on_startup(app)
    logger.info("AI chat gateway started")
    yield
    try:
        await on_shutdown(app)
    except Exception as e:
        logger.warning(f"Shutdown warning: {e}")


app = FastAPI(title=f"{settings.APP_NAME} - Core API", lifespan=lifespan)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if PROM_ENABLED:
    app.mount("/metrics", metrics_app())

app.include_router(health_router)


# Basic health endpoint for backwards compatibility
@app.get("/health")
def health():
    return {"status": "ok", "service": "gateway"}


@app.get("/version")
def version():
    return {"name": settings.APP_NAME, "env": settings.APP_ENV, "version": "0.1.0"}


app.include_router(ai_chat_router)
