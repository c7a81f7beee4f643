import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from models.schemas import CompletionRequest, ErrorResponse
from services import together

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["completion"])


def internal_error() -> JSONResponse:
    return JSONResponse(status_code=500, content=ErrorResponse(error="Internal Server Error").model_dump())


@router.post("/together")
async def together_completion(body: CompletionRequest, request: Request):
    settings = request.app.state.settings
    # The client has to outlive this handler; it is closed once the response is done
    client = httpx.AsyncClient(transport=request.app.state.llm_transport, timeout=60.0)
    try:
        response = await together.open_completion_stream(client, settings, body.prompt, body.model)
    except Exception:
        await client.aclose()
        logger.exception("API Error")
        return internal_error()

    async def close_upstream():
        await response.aclose()
        await client.aclose()

    return StreamingResponse(
        together.relay_events(response),
        media_type="text/event-stream",
        background=BackgroundTask(close_upstream),
    )
