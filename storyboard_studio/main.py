from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.router import api_router
from .config import ConfigurationError, Settings, load_settings
from .generation import VideoClient
from .llm.chat import ChatClient
from .store import StoryboardStore

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    runway_client: Optional[VideoClient] = None,
    chat_client: Optional[ChatClient] = None,
    store: Optional[StoryboardStore] = None,
) -> FastAPI:
    load_dotenv()
    settings = settings or load_settings()
    app = FastAPI(title="Storyboard Studio API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store or StoryboardStore()
    app.state.chat_client = chat_client or ChatClient.from_settings(settings)
    # The Runway client and controller are built on first use so a missing
    # secret only fails the requests that need it.
    app.state.runway_client = runway_client
    app.state.controller = None

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        controller = app.state.controller
        if controller is not None:
            await controller.shutdown()

    @app.get("/health", tags=["system"], summary="Health check")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_application()

