from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import ConfigurationError, Settings
from .models import CamelModel, GenerationStatus

logger = logging.getLogger(__name__)

ProviderDuration = Literal[4, 6, 8]

# Text-to-video accepts a small set of pixel sizes; other aspects map to the closest.
RATIO_TO_PIXELS: Dict[str, str] = {
    "16:9": "1920:1080",
    "9:16": "1080:1920",
    "4:3": "1280:720",
    "3:4": "720:1280",
    "1:1": "1280:720",
    "21:9": "1920:1080",
}
DEFAULT_PIXEL_RATIO = "1920:1080"
MAX_PROMPT_LENGTH = 1000


class RunwayServiceError(Exception):
    pass


class RunwayConfigurationError(ConfigurationError):
    pass


class VideoGenerateRequest(CamelModel):
    prompt: str = Field(..., min_length=1, max_length=MAX_PROMPT_LENGTH)
    duration: ProviderDuration = 6
    ratio: Optional[str] = None
    seed: Optional[int] = Field(default=None, ge=0)
    watermark: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, alias="image_url")


class RunwayArtifact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str


class RunwayTask(BaseModel):
    """Task payload as returned by the Runway API."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    taskId: Optional[str] = None
    status: GenerationStatus
    createdAt: Optional[str] = None
    progress: Optional[float] = None
    progressRatio: Optional[float] = None
    progressText: Optional[str] = None
    estimatedTimeToStartSeconds: Optional[float] = None
    artifacts: Optional[List[RunwayArtifact]] = None
    output: Optional[List[str]] = None
    failure: Optional[str] = None
    failureCode: Optional[str] = None
    error: Optional[str] = None

    @property
    def task_id(self) -> Optional[str]:
        return self.id or self.taskId

    @property
    def video_url(self) -> Optional[str]:
        if self.artifacts:
            return self.artifacts[0].url
        if self.output:
            return self.output[0]
        return None

    def to_submission(self) -> "VideoSubmission":
        return VideoSubmission(task_id=self.task_id, status=self.status, created_at=self.createdAt)

    def to_status(self) -> "VideoStatus":
        return VideoStatus(
            task_id=self.task_id,
            status=self.status,
            progress=self.progress if self.progress is not None else self.progressRatio,
            progress_text=self.progressText,
            video_url=self.video_url,
            error=self.error or self.failure,
            estimated_time_to_start_seconds=self.estimatedTimeToStartSeconds,
        )


class VideoSubmission(CamelModel):
    task_id: Optional[str] = None
    status: GenerationStatus
    created_at: Optional[str] = None


class VideoStatus(CamelModel):
    task_id: Optional[str] = None
    status: GenerationStatus
    progress: Optional[float] = None
    progress_text: Optional[str] = None
    video_url: Optional[str] = None
    error: Optional[str] = None
    estimated_time_to_start_seconds: Optional[float] = None


def pixel_ratio(ratio: Optional[str]) -> str:
    if not ratio:
        return DEFAULT_PIXEL_RATIO
    if ratio in RATIO_TO_PIXELS:
        return RATIO_TO_PIXELS[ratio]
    if ratio in RATIO_TO_PIXELS.values():
        return ratio
    return DEFAULT_PIXEL_RATIO


class RunwayClient:
    """Async client for the Runway task API."""

    def __init__(
        self,
        api_secret: str,
        base_url: str = "https://api.dev.runwayml.com/v1",
        api_version: str = "2024-11-06",
        model: str = "veo3.1_fast",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_secret:
            raise RunwayConfigurationError("Runway API credentials not configured")
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "RunwayClient":
        return cls(
            api_secret=settings.runway_api_secret or "",
            base_url=settings.runway_base_url,
            api_version=settings.runway_api_version,
            model=settings.runway_model,
            timeout=settings.request_timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_secret}",
            "X-Runway-Version": self.api_version,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, url, json=json, headers=self._headers())
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Runway API responded with HTTP %s for %s %s: %s",
                    e.response.status_code,
                    method,
                    endpoint,
                    e.response.text,
                )
                raise RunwayServiceError(
                    f"Runway API error: {e.response.status_code} - {e.response.text}"
                ) from e
            except httpx.RequestError as e:
                logger.error("Failed to reach Runway API at %s: %s", url, e)
                raise RunwayServiceError(f"Failed to connect to Runway API: {str(e)}") from e

    @staticmethod
    def _parse_task(response: httpx.Response) -> RunwayTask:
        try:
            return RunwayTask.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RunwayServiceError(f"Unexpected Runway API response: {e}") from e

    async def generate(self, request: VideoGenerateRequest) -> RunwayTask:
        body: Dict[str, Any] = {
            "model": self.model,
            "promptText": request.prompt,
            "ratio": pixel_ratio(request.ratio),
            "duration": request.duration,
        }
        if request.seed is not None:
            body["seed"] = request.seed
        if request.watermark is not None:
            body["watermark"] = request.watermark

        endpoint = "/text_to_video"
        if request.image_url:
            endpoint = "/image_to_video"
            body["promptImage"] = request.image_url

        logger.info("Submitting Runway task (%ss, ratio %s)", request.duration, body["ratio"])
        response = await self._request("POST", endpoint, json=body)
        task = self._parse_task(response)
        if not task.task_id:
            raise RunwayServiceError("Runway API did not return a task id")
        logger.info("Runway accepted task %s with status %s", task.task_id, task.status.value)
        return task

    async def get_status(self, task_id: str) -> RunwayTask:
        response = await self._request("GET", f"/tasks/{task_id}")
        return self._parse_task(response)

    async def cancel(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")
        logger.info("Cancelled Runway task %s", task_id)
