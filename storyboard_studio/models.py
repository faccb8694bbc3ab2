from __future__ import annotations

from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .utils.io import utcnow

DEFAULT_SHOT_DURATION = 5
DEFAULT_CAMERA_ANGLE = "Medium Shot"
DEFAULT_TITLE = "Untitled Storyboard"


def new_id() -> str:
    return str(uuid4())


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerationStatus(str, PyEnum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    THROTTLED = "THROTTLED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


IN_FLIGHT_STATUSES = frozenset(
    {GenerationStatus.PENDING, GenerationStatus.RUNNING, GenerationStatus.THROTTLED}
)
TERMINAL_STATUSES = frozenset(
    {GenerationStatus.SUCCEEDED, GenerationStatus.FAILED, GenerationStatus.CANCELLED}
)


class Timing(CamelModel):
    start: float = 0
    end: float = 0


class Shot(CamelModel):
    id: str = Field(default_factory=new_id)
    number: int = Field(default=1, ge=1)
    duration: float = DEFAULT_SHOT_DURATION
    timing: Timing = Field(default_factory=Timing)
    description: str = ""
    runway_prompt: str = ""
    camera_angle: str = DEFAULT_CAMERA_ANGLE
    mood: Optional[str] = None
    notes: Optional[str] = None

    task_id: Optional[str] = None
    status: Optional[GenerationStatus] = None
    progress_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    progress_text: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Storyboard(CamelModel):
    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_TITLE
    description: str = ""
    style: Optional[str] = None
    mood: Optional[str] = None
    total_duration: float = 0
    shots: List[Shot] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class MessageRole(str, PyEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(CamelModel):
    id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
