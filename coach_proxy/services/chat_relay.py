import json
import logging
from time import perf_counter
from typing import Any

from coach_proxy.analytics.events import AnalyticsEvent, ClientContext
from coach_proxy.analytics.recorder import AnalyticsRecorder
from coach_proxy.config.settings import Settings
from coach_proxy.core.errors import AppError
from coach_proxy.metrics import record_chat
from coach_proxy.models.api import ChatRequest
from coach_proxy.providers.openai_chat import OpenAIChatClient, extract_reply
from coach_proxy.services.sanitizer import last_user_content

logger = logging.getLogger("coach.chat")

CHAT_EVENT = "coach_chat"
CHAT_ERROR_EVENT = "coach_chat_error"
ERROR_BODY_SAMPLE_CHARS = 512
PROMPT_SAMPLE_CHARS = 500


class ChatRelay:
    def __init__(
        self,
        settings: Settings,
        recorder: AnalyticsRecorder,
        client: OpenAIChatClient | None = None,
    ):
        self._settings = settings
        self._recorder = recorder
        self._client = client
        if self._client is None and settings.openai_api_key:
            self._client = OpenAIChatClient(
                base_url=settings.openai_api_base,
                api_key=settings.openai_api_key,
                timeout_s=settings.openai_timeout_s,
            )

    def ensure_configured(self) -> OpenAIChatClient:
        if self._client is None:
            record_chat("config_error", "", 500, None)
            raise AppError(500, "missing_credential", "Missing OPENAI_API_KEY")
        return self._client

    async def relay(self, body: Any, context: ClientContext) -> dict[str, str]:
        client = self.ensure_configured()
        try:
            return await self._relay(client, body, context)
        except AppError:
            raise
        except Exception as exc:
            logger.exception("proxy_error")
            record_chat("error", "", 500, None)
            raise AppError(500, "proxy_error", "Proxy error") from exc

    async def _relay(
        self, client: OpenAIChatClient, body: Any, context: ClientContext
    ) -> dict[str, str]:
        request = ChatRequest.model_validate(body)

        started = perf_counter()
        upstream = await client.complete(
            model=request.model,
            temperature=request.temperature,
            messages=request.upstream_messages(),
        )
        latency_s = perf_counter() - started

        if not upstream.ok:
            await self._recorder.record(
                AnalyticsEvent.server_side(
                    context,
                    CHAT_ERROR_EVENT,
                    {
                        "status": upstream.status_code,
                        "body": upstream.text[:ERROR_BODY_SAMPLE_CHARS],
                    },
                )
            )
            logger.warning(
                "upstream_error",
                extra={
                    "model": request.model,
                    "status_code": upstream.status_code,
                    "latency_ms": int(latency_s * 1000),
                },
            )
            record_chat("upstream_error", request.model, upstream.status_code, latency_s)
            raise AppError(upstream.status_code, "upstream_error", upstream.text)

        reply = extract_reply(json.loads(upstream.text))
        last_user = last_user_content(request.messages)

        payload: dict[str, Any] = {
            "model": request.model,
            "temperature": request.temperature,
            "prompt_len": len(last_user),
        }
        if self._settings.chat_content_logging_enabled:
            payload["prompt_sample"] = last_user[:PROMPT_SAMPLE_CHARS]
        payload["reply_len"] = len(reply)

        await self._recorder.record(AnalyticsEvent.server_side(context, CHAT_EVENT, payload))

        logger.info(
            "chat_completed",
            extra={
                "model": request.model,
                "status_code": upstream.status_code,
                "latency_ms": int(latency_s * 1000),
            },
        )
        record_chat("ok", request.model, upstream.status_code, latency_s)
        return {"reply": reply}
