import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coach_proxy.analytics.recorder import AnalyticsRecorder
from coach_proxy.analytics.sinks import AnalyticsSink, create_analytics_sink
from coach_proxy.api.routes import router
from coach_proxy.config.settings import get_settings
from coach_proxy.core.errors import AppError, app_error_response
from coach_proxy.core.logging import configure_logging
from coach_proxy.middleware.origin import OriginGuardMiddleware, OriginPolicy
from coach_proxy.services.chat_relay import ChatRelay
from coach_proxy.services.tracking import TrackingService

logger = logging.getLogger("coach.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    sink: AnalyticsSink = app.state.analytics_sink
    await sink.startup()
    try:
        yield
    finally:
        await sink.shutdown()
        logger.info("analytics_sink_closed", extra={"backend": sink.backend})


def create_app(analytics_sink: AnalyticsSink | None = None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="AI Coach Proxy", version="0.1.0", lifespan=lifespan)

    origin_policy = OriginPolicy(settings.allowed_origin_set)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(origin_policy.allowed),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # added last so it runs first, ahead of CORS preflight handling
    app.add_middleware(OriginGuardMiddleware, policy=origin_policy)

    sink = analytics_sink or create_analytics_sink(settings)
    recorder = AnalyticsRecorder(sink, timeout_s=settings.analytics_write_timeout_s)
    app.state.settings = settings
    app.state.analytics_sink = sink
    app.state.chat_relay = ChatRelay(settings=settings, recorder=recorder)
    app.state.tracking_service = TrackingService(recorder=recorder)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return app_error_response(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            exc_info=exc,
            extra={"path": request.url.path},
        )
        return app_error_response(500, "Internal server error")

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    logger.info(
        "coach_proxy_listening",
        extra={"path": f"http://localhost:{settings.port}/api/health"},
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
