import logging
import os

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from models.schemas import ErrorResponse
from settings import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, llm_transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the completion gateway.

    Without explicit settings they are read from the environment, which raises
    ConfigurationError when TOGETHER_API_KEY is missing.
    """
    # 1. Settings first: a missing credential must stop startup here
    if settings is None:
        settings = load_settings(require_api_key=True)

    # 2. Setup App
    app = FastAPI(title="Persona Chat Gateway")
    app.state.settings = settings
    app.state.llm_transport = llm_transport

    # 3. Setup CORS — the chat UI is served from a different port
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 4. Errors leave as {"error": ...} bodies
    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        logger.warning("Rejected completion request: %s", exc.errors())
        return JSONResponse(status_code=400, content=ErrorResponse(error="Invalid request body").model_dump())

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.error("API Error", exc_info=exc)
        return JSONResponse(status_code=500, content=ErrorResponse(error="Internal Server Error").model_dump())

    # 5. Include Routers
    from routers import completion
    app.include_router(completion.router)

    @app.get("/")
    def read_root():
        return {"status": "Persona chat gateway is running", "model": settings.get_model()}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings(require_api_key=True)
    configure_logging(settings.get_log_level())
    uvicorn.run(create_app(settings), host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
