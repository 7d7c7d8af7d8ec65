import logging
import random
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from coach_proxy.analytics.events import AnalyticsEvent, ClientContext
from coach_proxy.analytics.recorder import AnalyticsRecorder
from coach_proxy.config.settings import current_sample_rate
from coach_proxy.core.errors import AppError
from coach_proxy.models.api import INVALID_EVENT_MESSAGE, TrackRequest

logger = logging.getLogger("coach.track")


class TrackingService:
    """Stores client-side telemetry, optionally keeping only a random sample.

    The sample rate is looked up on every call, so changing
    ``ANALYTICS_SAMPLE`` takes effect without a restart.
    """

    def __init__(
        self,
        recorder: AnalyticsRecorder,
        sample_rate: Callable[[], float] = current_sample_rate,
        draw: Callable[[], float] = random.random,
    ):
        self._recorder = recorder
        self._sample_rate = sample_rate
        self._draw = draw

    async def track(self, body: Any, context: ClientContext) -> dict[str, bool]:
        try:
            request = TrackRequest.model_validate(body if isinstance(body, dict) else {})
        except ValidationError as exc:
            raise AppError(400, "invalid_event", INVALID_EVENT_MESSAGE) from exc

        try:
            event = AnalyticsEvent(
                event_name=request.event,
                session_id=request.session_id,
                user_agent=context.user_agent,
                ip=context.ip,
                page=request.page,
                step=request.step,
                section_id=request.section_id,
                payload=request.payload,
            )

            rate = self._sample_rate()
            if rate < 1 and self._draw() > rate:
                return {"ok": True, "sampled": False}

            await self._recorder.record(event)
        except Exception as exc:
            logger.exception("track_failed")
            raise AppError(500, "track_failed", "track failed") from exc
        return {"ok": True}
