import json

import httpx
import pytest
from openai import AsyncOpenAI

from llm_relay.models.schemas import ChatCompletionRequest, ChatMessage
from llm_relay.services.llm import LLMError, LLMService, UpstreamError


def _completion(*contents):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "gemma-7b-it",
        "choices": [
            {
                "index": i,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": c},
            }
            for i, c in enumerate(contents)
        ],
    }


def _service(settings, handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url="https://upstream.test/v1",
        max_retries=0,
        http_client=http_client,
    )
    return LLMService(settings, client=client)


REQUEST = ChatCompletionRequest(
    model="gemma-7b-it",
    messages=[
        ChatMessage(role="system", content="sys"),
        ChatMessage(role="user", content="hi"),
    ],
)


@pytest.mark.asyncio
async def test_chat_sends_bearer_token_and_messages(settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion("**hello**", "other"))

    llm = _service(settings, handler)
    result = await llm.chat(REQUEST)
    await llm.aclose()

    assert result.choices == ["**hello**", "other"]

    sent = seen[0]
    assert sent.method == "POST"
    assert sent.url.path == "/v1/chat/completions"
    assert sent.headers["authorization"] == "Bearer test-key"
    body = json.loads(sent.content)
    assert body["model"] == "gemma-7b-it"
    assert body["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]


@pytest.mark.asyncio
async def test_chat_with_no_choices(settings):
    llm = _service(settings, lambda request: httpx.Response(200, json=_completion()))
    result = await llm.chat(REQUEST)
    await llm.aclose()
    assert result.choices == []


@pytest.mark.asyncio
async def test_non_2xx_raises_upstream_error(settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"error": {"message": "model overloaded"}})

    llm = _service(settings, handler)
    with pytest.raises(UpstreamError):
        await llm.chat(REQUEST)
    await llm.aclose()

    # 不重試
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_network_error_raises_upstream_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    llm = _service(settings, handler)
    with pytest.raises(LLMError):
        await llm.chat(REQUEST)
    await llm.aclose()


def test_default_client_targets_configured_base_url(settings):
    llm = LLMService(settings)
    assert str(llm.client.base_url).rstrip("/") == settings.OPENAI_BASE_URL
    assert llm.client.max_retries == 0
    assert llm.client.api_key == "test-key"
