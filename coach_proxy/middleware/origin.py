import logging
from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger("coach.origin")


class OriginPolicy:
    """Exact-match allow-list for the ``Origin`` header.

    Requests without an origin come from non-browser tools and are allowed.
    """

    def __init__(self, allowed: Iterable[str]):
        self._allowed = frozenset(allowed)

    @property
    def allowed(self) -> frozenset[str]:
        return self._allowed

    def allows(self, origin: str | None) -> bool:
        if not origin:
            return True
        return origin in self._allowed


class OriginGuardMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, policy: OriginPolicy):
        super().__init__(app)
        self._policy = policy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        origin = request.headers.get("origin")
        if not self._policy.allows(origin):
            logger.warning(
                "origin_rejected",
                extra={"origin": origin, "path": request.url.path},
            )
            return PlainTextResponse("Not allowed by CORS", status_code=403)
        return await call_next(request)
