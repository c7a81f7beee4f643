import json
import logging
from typing import AsyncIterator

import httpx

from errors import RequestFailure
from settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Rick from Rick and Morty. You must stay in character at all times. "
    "You are a genius scientist who is often drunk, sarcastic, and nihilistic. "
    "You frequently burp (indicated by *burp*) and use catchphrases like \"Wubba Lubba Dub Dub\". "
    "You should be rude, condescending, but occasionally show moments of genuine care. "
    "Your responses should reflect Rick's personality, scientific knowledge, and interdimensional experience."
)

TEMPERATURE = 0.9
MAX_TOKENS = 300


def build_payload(prompt: str, model: str) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
        "stream": True,
    }


def build_headers(settings: Settings) -> dict:
    key = settings.get_api_key()
    auth_val = key if key.lower().startswith("bearer ") else f"Bearer {key}"
    return {
        "Authorization": auth_val,
        "Content-Type": "application/json",
    }


async def open_completion_stream(client: httpx.AsyncClient, settings: Settings, prompt: str, model: str) -> httpx.Response:
    """Start a streaming chat completion and return the open response.

    The status is checked before returning so the caller can still answer with
    an error status; on success the caller owns the response and must close it.
    """
    request = client.build_request(
        "POST",
        settings.get_completions_url(),
        headers=build_headers(settings),
        json=build_payload(prompt, model),
    )
    response = await client.send(request, stream=True)
    if response.status_code != 200:
        error_msg = await response.aread()
        await response.aclose()
        raise RequestFailure(
            f"Together API Error {response.status_code}: {error_msg.decode(errors='replace')[:200]}",
            status_code=response.status_code,
        )
    return response


async def relay_events(response: httpx.Response) -> AsyncIterator[str]:
    """Re-emit the provider's content deltas as SSE events, then close the response."""
    try:
        async for chunk in response.aiter_lines():
            if not chunk or not chunk.startswith("data: ") or chunk == "data: [DONE]":
                continue
            try:
                data = json.loads(chunk[6:])
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict):
                continue
            if data.get("error"):
                yield f"data: {json.dumps({'error': str(data['error'])})}\n\n"
                return
            if data.get("choices") and len(data["choices"]) > 0:
                content = data["choices"][0].get("delta", {}).get("content")
                if content:
                    yield f"data: {json.dumps({'choices': [{'delta': {'content': content}}]})}\n\n"
        yield "data: [DONE]\n\n"
    except httpx.HTTPError as e:
        # Headers are already sent; the failure travels in-band
        logger.exception("Together stream broke mid-response")
        yield f"data: {json.dumps({'error': f'Stream interrupted: {type(e).__name__}'})}\n\n"
    finally:
        await response.aclose()
