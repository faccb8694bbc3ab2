from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Protocol

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from .models import IN_FLIGHT_STATUSES, GenerationStatus, Shot
from .runway_client import RunwayServiceError, RunwayTask, VideoGenerateRequest, VideoStatus
from .store import StoryboardStore

logger = logging.getLogger(__name__)

DEFAULT_PLANNED_DURATION = 6


class VideoClient(Protocol):
    async def generate(self, request: VideoGenerateRequest) -> RunwayTask: ...

    async def get_status(self, task_id: str) -> RunwayTask: ...


def provider_duration(planned: Optional[float]) -> int:
    """Quantize a planned shot length to the durations the video model accepts."""
    seconds = planned or DEFAULT_PLANNED_DURATION
    if seconds <= 5:
        return 4
    if seconds <= 7:
        return 6
    return 8


class GenerationController:
    """Per-shot video generation workflow: submit, poll, sync into the store.

    Each shot gets at most one background poll task, bound to the task id it
    was started for. Updates from a poll that is no longer current are dropped.
    """

    def __init__(
        self,
        store: StoryboardStore,
        client: VideoClient,
        poll_interval: float = 3.0,
        poll_retries: int = 3,
        retry_delay: float = 1.0,
        ratio: Optional[str] = None,
    ) -> None:
        self.store = store
        self.client = client
        self.poll_interval = poll_interval
        self.poll_retries = poll_retries
        self.retry_delay = retry_delay
        self.ratio = ratio
        # in-flight start requests per shot, and the newest attempt number
        self._starting: Dict[str, int] = {}
        self._attempts: Dict[str, int] = {}
        self._pollers: Dict[str, asyncio.Task] = {}
        self._polled_task_ids: Dict[str, str] = {}
        self._errors: Dict[str, str] = {}

    def is_generating(self, shot_id: str) -> bool:
        if self._starting.get(shot_id):
            return True
        shot = self.store.find_shot(shot_id)
        return shot is not None and shot.status in IN_FLIGHT_STATUSES

    def is_polling(self, shot_id: str) -> bool:
        task = self._pollers.get(shot_id)
        return task is not None and not task.done()

    def error(self, shot_id: str) -> Optional[str]:
        return self._errors.get(shot_id)

    async def start_generation(self, shot_id: str, prompt: Optional[str] = None) -> Optional[str]:
        """Submit a generation request for a shot.

        Returns the remote task id, or None when the request failed. Failures
        mark the shot FAILED and are kept as the shot's error; they are never
        raised to the caller.

        When starts overlap for the same shot, the most recently started one
        owns the shot: results of older attempts are not recorded.
        """
        shot = self.store.get_shot(shot_id)
        self._stop_polling(shot_id)
        self._errors.pop(shot_id, None)
        attempt = self._attempts.get(shot_id, 0) + 1
        self._attempts[shot_id] = attempt
        self._starting[shot_id] = self._starting.get(shot_id, 0) + 1

        self.store.update_shot(shot_id, {"status": GenerationStatus.PENDING, "error": None})
        try:
            request = VideoGenerateRequest(
                prompt=prompt if prompt is not None else shot.runway_prompt,
                duration=provider_duration(shot.duration),
                ratio=self.ratio,
            )
            task = await self.client.generate(request)
            task_id = task.task_id
            if not task_id:
                raise RunwayServiceError("Video API did not return a task id")
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Generation start failed for shot %s: %s", shot_id, message)
            if self._attempts.get(shot_id) != attempt:
                return None
            self._errors[shot_id] = message
            if self.store.find_shot(shot_id) is not None:
                self.store.update_shot(shot_id, {"status": GenerationStatus.FAILED, "error": message})
            return None
        finally:
            self._release_start(shot_id)

        if self._attempts.get(shot_id) != attempt:
            logger.warning("Task %s for shot %s was superseded by a newer request", task_id, shot_id)
            return task_id

        if self.store.find_shot(shot_id) is None:
            logger.warning("Shot %s was removed before task %s was recorded", shot_id, task_id)
            return task_id

        self.store.update_shot(
            shot_id,
            {
                "task_id": task_id,
                "status": GenerationStatus.PENDING,
                "progress_ratio": 0.0,
                "progress_text": None,
                "video_url": None,
            },
        )
        logger.info("Generation started for shot %s as task %s", shot_id, task_id)
        self.poll_status(shot_id)
        return task_id

    def poll_status(self, shot_id: str) -> Optional[asyncio.Task]:
        """Start polling a shot's task in the background, if it is in flight.

        A running poller is reused only while it tracks the shot's current task.
        """
        shot = self.store.find_shot(shot_id)
        if shot is None or not shot.task_id or shot.status is None or shot.status.is_terminal:
            return None

        existing = self._pollers.get(shot_id)
        if existing is not None and not existing.done():
            if self._polled_task_ids.get(shot_id) == shot.task_id:
                return existing
            self._stop_polling(shot_id)

        task = asyncio.create_task(self._poll_loop(shot_id, shot.task_id), name=f"poll-{shot_id}")
        self._pollers[shot_id] = task
        self._polled_task_ids[shot_id] = shot.task_id
        return task

    def cancel(self, shot_id: str) -> None:
        """Stop client-side tracking of a shot's generation; shot status is kept."""
        self._stop_polling(shot_id)
        self._starting.pop(shot_id, None)
        self._errors.pop(shot_id, None)

    async def shutdown(self) -> None:
        tasks = list(self._pollers.values())
        for shot_id in list(self._pollers):
            self._stop_polling(shot_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _release_start(self, shot_id: str) -> None:
        remaining = self._starting.get(shot_id, 0) - 1
        if remaining > 0:
            self._starting[shot_id] = remaining
        else:
            self._starting.pop(shot_id, None)

    def _stop_polling(self, shot_id: str) -> None:
        self._polled_task_ids.pop(shot_id, None)
        task = self._pollers.pop(shot_id, None)
        if task is not None and not task.done():
            task.cancel()
            logger.info("Stopped polling for shot %s", shot_id)

    def _is_current(self, shot_id: str, task_id: str) -> bool:
        shot = self.store.find_shot(shot_id)
        return (
            shot is not None
            and shot.task_id == task_id
            and self._pollers.get(shot_id) is asyncio.current_task()
        )

    async def _fetch_status(self, task_id: str) -> VideoStatus:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.poll_retries + 1),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(RunwayServiceError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                task = await self.client.get_status(task_id)
        return task.to_status()

    async def _poll_loop(self, shot_id: str, task_id: str) -> None:
        try:
            while True:
                try:
                    status = await self._fetch_status(task_id)
                except Exception as exc:
                    # shot status stays as last known; the remote task may still finish
                    if self._is_current(shot_id, task_id):
                        logger.error("Status polling failed for shot %s (task %s): %s", shot_id, task_id, exc)
                        self._errors[shot_id] = str(exc) or exc.__class__.__name__
                    return

                if not self._is_current(shot_id, task_id):
                    logger.debug("Dropping stale status for task %s", task_id)
                    return

                if not self._apply_status(shot_id, status):
                    return

                await asyncio.sleep(self.poll_interval)
        finally:
            if self._pollers.get(shot_id) is asyncio.current_task():
                del self._pollers[shot_id]
                self._polled_task_ids.pop(shot_id, None)

    def _apply_status(self, shot_id: str, status: VideoStatus) -> bool:
        """Write a remote status into the shot. Returns True while polling should continue."""
        if status.status is GenerationStatus.SUCCEEDED:
            self.store.update_shot(
                shot_id,
                {
                    "status": GenerationStatus.SUCCEEDED,
                    "video_url": status.video_url,
                    "progress_ratio": 1.0,
                    "progress_text": status.progress_text,
                },
            )
            logger.info("Shot %s video ready: %s", shot_id, status.video_url)
            return False

        if status.status in (GenerationStatus.FAILED, GenerationStatus.CANCELLED):
            self.store.update_shot(
                shot_id,
                {"status": GenerationStatus.FAILED, "error": status.error or f"Generation {status.status.value.lower()}"},
            )
            logger.warning("Shot %s generation ended with %s: %s", shot_id, status.status.value, status.error)
            return False

        self.store.update_shot(
            shot_id,
            {
                "status": status.status,
                "progress_ratio": _clamp_progress(status.progress),
                "progress_text": status.progress_text,
            },
        )
        return True


def _clamp_progress(progress: Optional[float]) -> float:
    return min(max(progress or 0.0, 0.0), 1.0)


__all__ = ["GenerationController", "VideoClient", "provider_duration"]
