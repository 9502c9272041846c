import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from llm_relay.api.routers import generate, health
from llm_relay.core.config import Settings, get_settings
from llm_relay.services.cache import ResponseCache
from llm_relay.services.llm import ChatBackend, LLMService

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- startup ----
    settings = app.state.settings
    app.state.cache.start()
    log.info("[STARTUP] model=%s upstream=%s", settings.OPENAI_MODEL, settings.OPENAI_BASE_URL)

    yield

    # ---- shutdown ----
    await app.state.cache.stop()
    await app.state.llm.aclose()
    log.info("[SHUTDOWN] relay stopped")


def create_app(
    settings: Optional[Settings] = None,
    cache: Optional[ResponseCache] = None,
    llm: Optional[ChatBackend] = None,
) -> FastAPI:
    """建立 relay app；cache 與上游 backend 可注入，否則依 settings 建立。"""
    settings = settings or get_settings()

    app = FastAPI(title="LLM Relay", lifespan=lifespan)
    app.state.settings = settings
    if cache is None:
        cache = ResponseCache(ttl=settings.CACHE_TTL, sweep_interval=settings.CACHE_SWEEP_INTERVAL)
    if llm is None:
        llm = LLMService(settings)
    app.state.cache = cache
    app.state.llm = llm

    # 路由
    app.include_router(generate.router)
    app.include_router(health.router)
    return app
