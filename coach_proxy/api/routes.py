import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from coach_proxy.analytics.events import ClientContext
from coach_proxy.core.errors import AppError
from coach_proxy.metrics import metrics_router
from coach_proxy.models.api import ChatReply, TrackResponse
from coach_proxy.services.chat_relay import ChatRelay
from coach_proxy.services.tracking import TrackingService

MAX_BODY_BYTES = 1_000_000

router = APIRouter()
router.include_router(metrics_router)


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    if len(raw) > MAX_BODY_BYTES:
        raise AppError(413, "body_too_large", "Request body too large")
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise AppError(400, "invalid_json", "Invalid JSON body") from exc


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "AI coach proxy is running."


@router.get("/api/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@router.post("/api/track", response_model=TrackResponse, response_model_exclude_none=True)
async def track(request: Request) -> dict[str, bool]:
    service: TrackingService = request.app.state.tracking_service
    body = await read_json_body(request)
    return await service.track(body, ClientContext.from_request(request))


@router.post("/api/chat", response_model=ChatReply)
async def chat(request: Request) -> dict[str, str]:
    relay: ChatRelay = request.app.state.chat_relay
    # a missing credential wins over any problem with the body
    relay.ensure_configured()
    body = await read_json_body(request)
    return await relay.relay(body, ClientContext.from_request(request))
