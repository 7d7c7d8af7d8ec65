import pytest

from coach_proxy.config.settings import Settings, current_sample_rate


def test_allowed_origin_set_parses_values() -> None:
    settings = Settings(allowed_origins="https://a.example, http://localhost:3000,,")
    assert settings.allowed_origin_set == frozenset({"https://a.example", "http://localhost:3000"})


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PORT",
        "OPENAI_API_BASE",
        "ANALYTICS_SAMPLE",
        "ANALYTICS_LOG_CHAT_CONTENT",
        "ALLOWED_ORIGINS",
        "DATABASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.port == 3000
    assert settings.openai_api_base == "https://api.openai.com/v1"
    assert settings.analytics_sample_rate == 1.0
    assert settings.chat_content_logging_enabled is False
    assert settings.persistence_enabled is False
    assert "https://jiaruilei.github.io" in settings.allowed_origin_set


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("0.25", 0.25), ("1", 1.0), ("abc", 1.0), ("", 1.0), ("nan", 1.0), (" 0 ", 0.0)],
)
def test_analytics_sample_rate_parsing(raw: str, expected: float) -> None:
    assert Settings(analytics_sample=raw).analytics_sample_rate == expected


def test_current_sample_rate_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANALYTICS_SAMPLE", "0.3")
    assert current_sample_rate() == 0.3
    monkeypatch.setenv("ANALYTICS_SAMPLE", "0.7")
    assert current_sample_rate() == 0.7


def test_database_sslmode() -> None:
    assert Settings(pgsslmode="disable").database_sslmode == "disable"
    assert Settings(pgsslmode="DISABLE").database_sslmode == "disable"
    assert Settings(pgsslmode="").database_sslmode == "require"


def test_persistence_enabled_requires_non_blank_url() -> None:
    assert Settings(database_url="  ").persistence_enabled is False
    assert Settings(database_url="postgresql://db/coach").persistence_enabled is True


def test_environment_variable_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ANALYTICS_LOG_CHAT_CONTENT", "true")
    monkeypatch.setenv("PORT", "8080")
    settings = Settings()
    assert settings.openai_api_key == "sk-test"
    assert settings.chat_content_logging_enabled is True
    assert settings.port == 8080


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("1", False), ("yes", False), ("on", False), ("True", False), ("false", False)],
)
def test_chat_content_logging_needs_exact_true(raw: str, expected: bool) -> None:
    assert Settings(analytics_log_chat_content=raw).chat_content_logging_enabled is expected


def test_current_sample_rate_ignores_unrelated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("DATABASE_POOL_SIZE", "many")
    monkeypatch.setenv("ANALYTICS_SAMPLE", "0.5")
    assert current_sample_rate() == 0.5

    monkeypatch.setenv("ANALYTICS_SAMPLE", "garbage")
    assert current_sample_rate() == 1.0
