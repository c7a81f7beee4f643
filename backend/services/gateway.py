import json
import logging
from typing import AsyncIterator, Optional

import httpx

from errors import RequestFailure

logger = logging.getLogger(__name__)


def parse_event(line: str) -> Optional[str]:
    """Content delta carried by one SSE line, or None for lines without content.

    Raises RequestFailure when the line is an in-stream error event.
    """
    if not line.startswith("data: ") or line == "data: [DONE]":
        return None
    try:
        data = json.loads(line[6:])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    if data.get("error"):
        raise RequestFailure(f"Stream error: {data['error']}")
    if data.get("choices") and len(data["choices"]) > 0:
        return data["choices"][0].get("delta", {}).get("content") or None
    return None


class CompletionGateway:
    """Client for the /api/together route: posts a prompt, yields content deltas."""

    def __init__(self, url: str, transport: httpx.AsyncBaseTransport | None = None, timeout: float = 60.0):
        self.url = url
        self._transport = transport
        self._timeout = timeout

    async def stream_deltas(self, prompt: str, model: str) -> AsyncIterator[str]:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                async with client.stream("POST", self.url, json={"prompt": prompt, "model": model}) as response:
                    if not response.is_success:
                        body = await response.aread()
                        raise RequestFailure(
                            f"HTTP error! status: {response.status_code} ({_error_text(body)})",
                            status_code=response.status_code,
                        )
                    async for line in response.aiter_lines():
                        if line == "data: [DONE]":
                            break
                        delta = parse_event(line)
                        if delta:
                            yield delta
            except httpx.HTTPError as e:
                raise RequestFailure(f"Gateway request failed: {e}") from e


def _error_text(body: bytes) -> str:
    try:
        return str(json.loads(body).get("error", "unknown error"))
    except (ValueError, AttributeError):
        return body.decode(errors="replace")[:200] or "empty body"
