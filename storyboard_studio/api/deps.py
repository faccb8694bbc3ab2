from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from ..config import Settings
from ..generation import GenerationController, VideoClient
from ..llm.chat import ChatClient
from ..runway_client import RunwayClient
from ..store import StoryboardStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> StoryboardStore:
    return request.app.state.store


def get_chat_client(request: Request) -> ChatClient:
    return request.app.state.chat_client


def get_runway_client(request: Request) -> VideoClient:
    state = request.app.state
    if state.runway_client is None:
        # raises RunwayConfigurationError when the secret is missing
        state.runway_client = RunwayClient.from_settings(state.settings)
    return state.runway_client


def get_controller(
    request: Request,
    client: VideoClient = Depends(get_runway_client),
) -> GenerationController:
    state = request.app.state
    if state.controller is None:
        settings: Settings = state.settings
        state.controller = GenerationController(
            store=state.store,
            client=client,
            poll_interval=settings.poll_interval,
            poll_retries=settings.poll_retries,
            retry_delay=settings.retry_delay,
            ratio=settings.default_ratio,
        )
    return state.controller


def get_existing_controller(request: Request) -> Optional[GenerationController]:
    """The controller if generation was ever started; read-only routes use this."""
    return request.app.state.controller
