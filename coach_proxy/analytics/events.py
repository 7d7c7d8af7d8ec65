from dataclasses import asdict, dataclass
from typing import Any

from starlette.requests import Request

EVENT_NAME_MAX_LENGTH = 64


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded is not None:
        return forwarded.split(",")[0].strip() or None
    if request.client is None:
        return None
    return request.client.host


def _blank_to_none(value: str | None) -> str | None:
    return value if value else None


@dataclass(frozen=True)
class ClientContext:
    """Request metadata attached to every analytics event."""

    session_id: str | None
    user_agent: str | None
    ip: str | None
    referer: str | None

    @classmethod
    def from_request(cls, request: Request) -> "ClientContext":
        return cls(
            session_id=_blank_to_none(request.headers.get("x-session-id")),
            user_agent=_blank_to_none(request.headers.get("user-agent")),
            ip=client_ip(request),
            referer=_blank_to_none(request.headers.get("referer")),
        )


@dataclass(frozen=True)
class AnalyticsEvent:
    event_name: str
    session_id: str | None = None
    user_agent: str | None = None
    ip: str | None = None
    page: str | None = None
    step: int | None = None
    section_id: str | None = None
    payload: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.event_name:
            raise ValueError("event_name is required")
        if len(self.event_name) > EVENT_NAME_MAX_LENGTH:
            raise ValueError(f"event_name exceeds {EVENT_NAME_MAX_LENGTH} characters")

    @classmethod
    def server_side(
        cls, context: ClientContext, event_name: str, payload: dict[str, Any]
    ) -> "AnalyticsEvent":
        """Build an event emitted by the relay itself; the referer stands in for the page."""
        return cls(
            event_name=event_name,
            session_id=context.session_id,
            user_agent=context.user_agent,
            ip=context.ip,
            page=context.referer,
            payload=payload,
        )

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        for key in ("session_id", "user_agent", "ip", "page", "section_id"):
            row[key] = _blank_to_none(row[key])
        return row
