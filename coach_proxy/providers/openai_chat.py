"""Client for the OpenAI-compatible chat completions endpoint."""

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class OpenAIChatClient:
    """Posts one completion request and hands back the raw status and body.

    Non-2xx answers are returned, not raised, so the caller can pass the
    provider's own status and text through to the browser.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_s: float = 60.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_s

    async def complete(
        self,
        model: str,
        temperature: float,
        messages: list[dict[str, str]],
    ) -> UpstreamResponse:
        url = f"{self._base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body: dict[str, object] = {
            "model": model,
            "temperature": temperature,
            "messages": messages,
        }

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(url, json=body, headers=headers)

        return UpstreamResponse(status_code=resp.status_code, text=resp.text)


def extract_reply(data: Any) -> str:
    """Return ``choices[0].message.content`` or ``""`` when any level is missing."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if content is None:
        return ""
    return content if isinstance(content, str) else str(content)
