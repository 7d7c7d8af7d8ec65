import math
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from coach_proxy.analytics.events import EVENT_NAME_MAX_LENGTH
from coach_proxy.models.chat import ChatTurn
from coach_proxy.services.sanitizer import (
    DEFAULT_TEMPERATURE,
    coerce_temperature,
    sanitize_messages,
    system_prompt_text,
)

DEFAULT_MODEL = "gpt-4o-mini"
INVALID_EVENT_MESSAGE = "Missing or invalid 'event' field"


class ChatRequest(BaseModel):
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    system: str = ""
    messages: list[ChatTurn] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> dict[str, Any]:
        raw = dict(data) if isinstance(data, dict) else {}

        model = raw.get("model")
        system = system_prompt_text(raw.get("system"))

        cleaned: dict[str, Any] = {
            "system": system,
            "messages": sanitize_messages(raw.get("messages"), system),
        }
        if isinstance(model, str) and model:
            cleaned["model"] = model
        if "temperature" in raw:
            cleaned["temperature"] = coerce_temperature(raw["temperature"])
        return cleaned

    def upstream_messages(self) -> list[dict[str, str]]:
        return [turn.model_dump() for turn in self.messages]


class ChatReply(BaseModel):
    reply: str


class TrackRequest(BaseModel):
    event: str = Field(min_length=1, max_length=EVENT_NAME_MAX_LENGTH)
    page: str | None = None
    step: int | None = None
    section_id: str | None = Field(default=None, alias="sectionId")
    session_id: str | None = Field(default=None, alias="sessionId")
    payload: dict[str, Any] | None = None

    @field_validator("event", mode="before")
    @classmethod
    def _truncate_event(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError(INVALID_EVENT_MESSAGE)
        return value[:EVENT_NAME_MAX_LENGTH]

    @field_validator("page", "section_id", "session_id", mode="before")
    @classmethod
    def _string_or_none(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("step", mode="before")
    @classmethod
    def _finite_step(cls, value: Any) -> int | None:
        # bool is an int subclass but never a step number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return int(value)

    @field_validator("payload", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None


class TrackResponse(BaseModel):
    ok: bool = True
    sampled: bool | None = None
