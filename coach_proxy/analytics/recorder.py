import asyncio
import logging

from coach_proxy.analytics.events import AnalyticsEvent
from coach_proxy.analytics.sinks import AnalyticsSink
from coach_proxy.metrics import record_analytics

logger = logging.getLogger("coach.analytics")


class AnalyticsRecorder:
    """Front for an ``AnalyticsSink`` that never fails the calling request.

    Each write is awaited, so nothing is lost silently when the response goes
    out, but it is capped at ``timeout_s`` and any error is logged and dropped.
    """

    def __init__(self, sink: AnalyticsSink, timeout_s: float = 2.0):
        self._sink = sink
        self._timeout_s = timeout_s

    @property
    def sink(self) -> AnalyticsSink:
        return self._sink

    async def record(self, event: AnalyticsEvent) -> bool:
        try:
            await asyncio.wait_for(self._sink.record(event), timeout=self._timeout_s)
        except TimeoutError:
            logger.warning(
                "analytics_record_timeout",
                extra={"event_name": event.event_name, "backend": self._sink.backend},
            )
            record_analytics(event.event_name, self._sink.backend, "timeout")
            return False
        except Exception as exc:
            logger.warning(
                "analytics_record_failed",
                extra={
                    "event_name": event.event_name,
                    "backend": self._sink.backend,
                    "error": f"{type(exc).__name__}: {exc}",
                },
            )
            record_analytics(event.event_name, self._sink.backend, "error")
            return False
        record_analytics(event.event_name, self._sink.backend, "written")
        return True
