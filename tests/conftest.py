import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from coach_proxy.analytics.events import AnalyticsEvent
from coach_proxy.config.settings import clear_settings_cache
from coach_proxy.main import create_app


class CollectingSink:
    backend = "memory"

    def __init__(self) -> None:
        self.events: list[AnalyticsEvent] = []

    async def startup(self) -> None:
        return None

    async def record(self, event: AnalyticsEvent) -> None:
        self.events.append(event)

    async def shutdown(self) -> None:
        return None

    def named(self, event_name: str) -> list[AnalyticsEvent]:
        return [event for event in self.events if event.event_name == event_name]


class FakeUpstream:
    """Stands in for the provider by patching ``httpx.AsyncClient.post``."""

    def __init__(self) -> None:
        self.status_code = 200
        self.text = json.dumps({"choices": [{"message": {"content": "Hi there"}}]})
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    def respond(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text

    def install(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = self

        async def fake_post(self, url: str, json: Any = None, headers: Any = None, **kwargs: Any):  # type: ignore[no-untyped-def]  # noqa: ANN001
            fake.calls.append({"url": url, "json": json, "headers": headers})
            if fake.error is not None:
                raise fake.error
            return httpx.Response(status_code=fake.status_code, text=fake.text)

        monkeypatch.setattr("httpx.AsyncClient.post", fake_post)


def _base_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_API_BASE", "https://upstream.test/v1")
    for name in (
        "DATABASE_URL",
        "ANALYTICS_SAMPLE",
        "ANALYTICS_LOG_CHAT_CONTENT",
        "ALLOWED_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def analytics_sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def upstream(monkeypatch: pytest.MonkeyPatch) -> FakeUpstream:
    fake = FakeUpstream()
    fake.install(monkeypatch)
    return fake


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, analytics_sink: CollectingSink) -> TestClient:
    _base_env(monkeypatch)
    clear_settings_cache()
    app = create_app(analytics_sink=analytics_sink)
    return TestClient(app)


@pytest.fixture
def log_only_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    _base_env(monkeypatch)
    clear_settings_cache()
    return TestClient(create_app())


@pytest.fixture
def keyless_client(monkeypatch: pytest.MonkeyPatch, analytics_sink: CollectingSink) -> TestClient:
    _base_env(monkeypatch)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    clear_settings_cache()
    return TestClient(create_app(analytics_sink=analytics_sink))
