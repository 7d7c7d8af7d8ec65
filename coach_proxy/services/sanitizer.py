"""Normalization of client-supplied chat input.

Clients send whatever they like; these helpers keep only well-typed turns and
never raise.
"""

import math
from collections.abc import Mapping
from typing import Any

from coach_proxy.models.chat import ChatTurn

DEFAULT_TEMPERATURE = 0.2


def _is_turn(item: Any) -> bool:
    return (
        isinstance(item, Mapping)
        and isinstance(item.get("role"), str)
        and isinstance(item.get("content"), str)
    )


def sanitize_messages(raw: Any, system: str = "") -> list[ChatTurn]:
    """Return the well-formed turns of ``raw`` in order.

    Malformed elements are dropped. A non-empty ``system`` prompt is put in
    front unless a system turn is already present, in which case that turn
    wins and is left untouched.
    """
    items = raw if isinstance(raw, list) else []
    clean = [
        ChatTurn(role=item["role"], content=str(item["content"]))
        for item in items
        if _is_turn(item)
    ]
    if system and not any(turn.role == "system" for turn in clean):
        clean.insert(0, ChatTurn(role="system", content=system))
    return clean


def coerce_temperature(raw: Any, default: float = DEFAULT_TEMPERATURE) -> float:
    value: float
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(value):
        return default
    return value


def last_user_content(turns: list[ChatTurn]) -> str:
    for turn in reversed(turns):
        if turn.role == "user":
            return turn.content
    return ""


def system_prompt_text(raw: Any) -> str:
    """Render a client ``system`` value the way a browser's ``String()`` would.

    Falsy values (``None``, ``False``, zero, ``""``) mean no system prompt.
    """
    if raw is None or raw is False or raw == "":
        return ""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw == 0:
        return ""
    return _js_string(raw)


def _js_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return ",".join(_js_string(item) for item in value)
    return "[object Object]"
