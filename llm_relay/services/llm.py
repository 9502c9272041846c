import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from llm_relay.core.config import Settings
from llm_relay.models.schemas import ChatCompletionRequest, ChatCompletionResult

log = logging.getLogger(__name__)


class LLMError(RuntimeError):
    pass


class UpstreamError(LLMError):
    """上游失敗：連線錯誤、逾時或非 2xx 回應。"""


class ChatBackend(Protocol):
    async def chat(self, request: ChatCompletionRequest) -> ChatCompletionResult: ...

    async def aclose(self) -> None: ...


class LLMService:
    """OpenAI 相容的 chat completion client（預設指向 Groq）。"""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        if client is None:
            kwargs = {}
            if settings.OPENAI_BASE_URL:
                kwargs["base_url"] = settings.OPENAI_BASE_URL
            if settings.OPENAI_TIMEOUT_SECONDS is not None:
                kwargs["timeout"] = settings.OPENAI_TIMEOUT_SECONDS
            # 不自動重試：失敗直接回報給呼叫端
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=0, **kwargs)
        self.client = client

    async def chat(self, request: ChatCompletionRequest) -> ChatCompletionResult:
        try:
            resp = await self.client.chat.completions.create(
                model=request.model,
                messages=[m.model_dump() for m in request.messages],
            )
        except openai.OpenAIError as e:
            log.warning("[LLM] upstream call failed model=%s error=%s", request.model, e)
            raise UpstreamError(str(e)) from e

        choices = [(c.message.content or "") for c in (resp.choices or [])]
        return ChatCompletionResult(choices=choices)

    async def aclose(self) -> None:
        await self.client.close()
