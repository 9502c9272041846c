import logging
import time

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import ValidationError

from llm_relay.core.metrics import (
    CACHE_HIT_COUNTER,
    CACHE_MISS_COUNTER,
    LATENCY_HISTOGRAM,
    REQUEST_COUNTER,
    UPSTREAM_ERROR_COUNTER,
)
from llm_relay.models.schemas import (
    ChatCompletionRequest,
    ChatMessage,
    GenerateRequest,
    GenerateResponse,
)
from llm_relay.services.cache import fingerprint
from llm_relay.services.llm import UpstreamError

log = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])

NO_RESPONSE_DETAIL = "no response received"


def _clean(text: str) -> str:
    # 去掉 markdown 粗體/斜體用的 *
    return text.replace("*", "")


@router.post("/generate", response_model=GenerateResponse)
async def generate(request: Request, response: Response):
    """
    呼叫端中途斷線不會取消上游呼叫，成功的結果仍會寫入快取。
    同一個 fingerprint 的並行 miss 各自呼叫上游，最後一次 set 為準。
    """
    start = time.perf_counter()
    status = "500"
    try:
        result = await _handle(request, response)
        status = "200"
        return result
    except HTTPException as he:
        status = str(he.status_code)
        raise
    finally:
        REQUEST_COUNTER.labels(status=status).inc()
        LATENCY_HISTOGRAM.observe(time.perf_counter() - start)


async def _handle(request: Request, response: Response) -> GenerateResponse:
    cache = request.app.state.cache
    llm = request.app.state.llm
    settings = request.app.state.settings

    # 1) 讀 body + 解析 JSON（不檢查 Content-Type）
    body = await request.body()
    try:
        payload = GenerateRequest.model_validate_json(body)
    except ValidationError as e:
        if any(err["type"] == "json_invalid" for err in e.errors()):
            detail = "invalid JSON body"
        else:
            detail = "body must be a JSON object with string fields 'prompt' and 'system'"
        raise HTTPException(status_code=400, detail=detail)

    key = fingerprint(payload.system, payload.prompt)

    # 2) Cache
    cached = cache.get(key)
    if cached is not None:
        CACHE_HIT_COUNTER.inc()
        log.info("[GENERATE] cache hit fp=%s", key[:12])
        response.headers["X-Cache"] = "HIT"
        return GenerateResponse(response=cached)

    CACHE_MISS_COUNTER.inc()

    # 3) 呼叫上游 LLM
    completion = ChatCompletionRequest(
        model=settings.OPENAI_MODEL,
        messages=[
            ChatMessage(role="system", content=payload.system),
            ChatMessage(role="user", content=payload.prompt),
        ],
    )
    try:
        result = await llm.chat(completion)
    except UpstreamError as e:
        UPSTREAM_ERROR_COUNTER.labels(kind="error").inc()
        log.error("[GENERATE] upstream error fp=%s detail=%s", key[:12], e)
        raise HTTPException(status_code=500, detail=f"upstream request failed: {e}")

    if not result.choices:
        UPSTREAM_ERROR_COUNTER.labels(kind="empty").inc()
        log.error("[GENERATE] upstream returned no choices fp=%s", key[:12])
        raise HTTPException(status_code=500, detail=NO_RESPONSE_DETAIL)

    # 4) 回寫快取
    text = _clean(result.choices[0])
    cache.set(key, text)
    log.info("[GENERATE] cache fill fp=%s answer_len=%d", key[:12], len(text))

    response.headers["X-Cache"] = "MISS"
    return GenerateResponse(response=text)
