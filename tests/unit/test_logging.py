import json
import logging

from coach_proxy.core.logging import JsonFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="coach.analytics",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="event",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_analytics_fields() -> None:
    line = JsonFormatter().format(
        _record(type="analytics", event_name="click", step=3, payload={"a": 1}, ip=None)
    )
    payload = json.loads(line)

    assert payload["message"] == "event"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "coach.analytics"
    assert payload["type"] == "analytics"
    assert payload["event_name"] == "click"
    assert payload["step"] == 3
    assert payload["payload"] == {"a": 1}
    assert "ip" not in payload
    assert "timestamp" in payload
