from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ... import schemas
from ...generation import VideoClient, provider_duration
from ...runway_client import RunwayServiceError, VideoGenerateRequest, VideoStatus, VideoSubmission
from ..deps import get_runway_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runway", tags=["runway"])


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/generate", response_model=VideoSubmission)
async def generate_video(
    generate_in: schemas.RunwayGenerateIn,
    client: VideoClient = Depends(get_runway_client),
):
    if not generate_in.prompt:
        return error_response("Prompt is required", 400)

    try:
        request = VideoGenerateRequest(
            prompt=generate_in.prompt,
            duration=provider_duration(generate_in.duration),
            ratio=generate_in.ratio,
            seed=generate_in.seed,
            watermark=generate_in.watermark,
            image_url=generate_in.image_url,
        )
    except ValidationError as exc:
        return error_response(str(exc), 400)

    try:
        task = await client.generate(request)
    except RunwayServiceError as exc:
        logger.error("Runway generation error: %s", exc)
        return error_response(str(exc), 500)
    return task.to_submission()


@router.get("/status", response_model=VideoStatus)
async def video_status(
    task_id: Optional[str] = Query(default=None, alias="taskId"),
    client: VideoClient = Depends(get_runway_client),
):
    if not task_id:
        return error_response("Task ID is required", 400)

    try:
        task = await client.get_status(task_id)
    except RunwayServiceError as exc:
        logger.error("Runway status error for %s: %s", task_id, exc)
        return error_response(str(exc), 500)
    return task.to_status()
