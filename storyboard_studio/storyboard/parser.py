from __future__ import annotations

import json
import logging
import re
from enum import Enum as PyEnum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ..models import (
    DEFAULT_CAMERA_ANGLE,
    DEFAULT_SHOT_DURATION,
    DEFAULT_TITLE,
    Shot,
    Storyboard,
    Timing,
    new_id,
)
from ..utils.io import utcnow

logger = logging.getLogger(__name__)

FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```")
# Lazy scan, not a tokenizer: nested braces after the shots array can cut the object short.
SHOTS_OBJECT_PATTERN = re.compile(r"\{[\s\S]*?\"shots\"\s*:\s*\[[\s\S]*?\]\s*[\s\S]*?\}")


class ParseFailureReason(str, PyEnum):
    NOT_FOUND = "not_found"
    INVALID_JSON = "invalid_json"
    INVALID_SHAPE = "invalid_shape"


class StoryboardParseError(Exception):
    def __init__(self, reason: ParseFailureReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class RawShot(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    description: Optional[str] = None
    runway_prompt: Optional[str] = None
    camera_angle: Optional[str] = None
    duration: Optional[float] = None
    mood: Optional[str] = None
    notes: Optional[str] = None


class RawStoryboard(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    style: Optional[str] = None
    mood: Optional[str] = None
    shots: List[RawShot]


def extract_json_text(content: str) -> str:
    match = FENCED_JSON_PATTERN.search(content)
    if match:
        return match.group(1)

    match = SHOTS_OBJECT_PATTERN.search(content)
    if match:
        return match.group(0)

    raise StoryboardParseError(ParseFailureReason.NOT_FOUND, "No storyboard JSON found in message")


def extract_storyboard_payload(content: str) -> Dict[str, Any]:
    """Locate and decode the storyboard object embedded in assistant text.

    Raises StoryboardParseError when nothing is found, the JSON does not decode,
    or the decoded value has no ``shots`` array.
    """
    json_text = extract_json_text(content)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as exc:
        raise StoryboardParseError(ParseFailureReason.INVALID_JSON, f"Malformed storyboard JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("shots"), list):
        raise StoryboardParseError(ParseFailureReason.INVALID_SHAPE, "Storyboard JSON has no 'shots' array")

    return data


def build_storyboard(raw: RawStoryboard) -> Storyboard:
    now = utcnow()
    current_start: float = 0
    shots: List[Shot] = []
    for index, raw_shot in enumerate(raw.shots):
        # falsy check: an explicit 0 also falls back to the default
        duration = raw_shot.duration or DEFAULT_SHOT_DURATION
        timing = Timing(start=current_start, end=current_start + duration)
        current_start += duration

        description = raw_shot.description or ""
        shots.append(
            Shot(
                id=new_id(),
                number=index + 1,
                duration=duration,
                timing=timing,
                description=description,
                runway_prompt=raw_shot.runway_prompt or description,
                camera_angle=raw_shot.camera_angle or DEFAULT_CAMERA_ANGLE,
                mood=raw_shot.mood,
                notes=raw_shot.notes,
                created_at=now,
                updated_at=now,
            )
        )

    return Storyboard(
        id=new_id(),
        title=raw.title or DEFAULT_TITLE,
        description=raw.description or "",
        style=raw.style,
        mood=raw.mood,
        total_duration=current_start,
        shots=shots,
        created_at=now,
        updated_at=now,
    )


def parse_storyboard(content: str) -> Optional[Storyboard]:
    """Parse a storyboard out of an assistant message.

    Returns None when the message carries no usable storyboard; this is the
    normal outcome for conversational replies and is never raised.
    """
    try:
        payload = extract_storyboard_payload(content)
        raw = RawStoryboard.model_validate(payload)
    except StoryboardParseError as exc:
        if exc.reason is ParseFailureReason.NOT_FOUND:
            logger.debug("No storyboard in message: %s", exc)
        else:
            logger.warning("Error parsing storyboard (%s): %s", exc.reason.value, exc)
        return None
    except ValidationError as exc:
        logger.warning("Error parsing storyboard (%s): %s", ParseFailureReason.INVALID_SHAPE.value, exc)
        return None
    except Exception:
        logger.exception("Unexpected error parsing storyboard")
        return None

    storyboard = build_storyboard(raw)
    logger.info(
        "Parsed storyboard '%s' with %d shots (%.1fs)",
        storyboard.title,
        len(storyboard.shots),
        storyboard.total_duration,
    )
    return storyboard


def renumber(shots: Sequence[Shot]) -> List[Shot]:
    return [shot.model_copy(update={"number": index + 1}) for index, shot in enumerate(shots)]


def recompute_timing(shots: Sequence[Shot]) -> List[Shot]:
    """Return copies of ``shots`` with cumulative timing windows.

    Durations are used as-is: a zero-length shot keeps a zero-width window.
    """
    now = utcnow()
    current_start: float = 0
    updated: List[Shot] = []
    for shot in shots:
        timing = Timing(start=current_start, end=current_start + shot.duration)
        current_start += shot.duration
        updated.append(shot.model_copy(update={"timing": timing, "updated_at": now}))
    return updated


def total_duration(shots: Sequence[Shot]) -> float:
    return shots[-1].timing.end if shots else 0


__all__ = [
    "ParseFailureReason",
    "RawShot",
    "RawStoryboard",
    "StoryboardParseError",
    "build_storyboard",
    "extract_json_text",
    "extract_storyboard_payload",
    "parse_storyboard",
    "recompute_timing",
    "renumber",
    "total_duration",
]
