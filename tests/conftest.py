# tests/conftest.py
import asyncio

import httpx
import pytest

from llm_relay.api.main import create_app
from llm_relay.core.config import Settings
from llm_relay.models.schemas import ChatCompletionResult
from llm_relay.services.cache import ResponseCache


class FakeClock:
    """可手動前進的時鐘，測過期不用真的等。"""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubBackend:
    """假的上游：記錄每次呼叫，回固定 choices 或丟指定錯誤。"""

    def __init__(self, choices=None, error=None, delay=0.0) -> None:
        self.choices = ["stub answer"] if choices is None else choices
        self.error = error
        self.delay = delay  # 模擬慢速上游
        self.calls = []
        self.closed = False

    async def chat(self, request):
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ChatCompletionResult(choices=list(self.choices))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    return Settings(OPENAI_API_KEY="test-key", _env_file=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(clock=clock)


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def app(settings, cache, backend):
    return create_app(settings=settings, cache=cache, llm=backend)


@pytest.fixture
async def client(app):
    """httpx ASGITransport 直接打 FastAPI app（in-process，不跑 lifespan）"""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
