from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from llm_relay.core.metrics import registry

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/metrics", response_class=PlainTextResponse)
def metrics():
    data = generate_latest(registry)
    return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)
