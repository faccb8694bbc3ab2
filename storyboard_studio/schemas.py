from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .models import CamelModel, GenerationStatus, MessageRole, Storyboard
from .runway_client import MAX_PROMPT_LENGTH


class ChatMessageIn(CamelModel):
    role: MessageRole
    content: str


class ChatRequest(CamelModel):
    messages: List[ChatMessageIn] = Field(..., min_length=1)


class ParseRequest(CamelModel):
    content: str


class ParseResponse(CamelModel):
    storyboard: Optional[Storyboard] = None


class ReorderRequest(CamelModel):
    shot_ids: List[str]


class SelectionRequest(CamelModel):
    shot_id: Optional[str] = None


class SelectionResponse(CamelModel):
    selected_shot_id: Optional[str] = None


class ShotCreate(CamelModel):
    description: str = ""
    runway_prompt: Optional[str] = None
    camera_angle: str = "Medium Shot"
    duration: float = Field(default=5, ge=0)
    mood: Optional[str] = None
    notes: Optional[str] = None


class ShotUpdate(CamelModel):
    description: Optional[str] = None
    runway_prompt: Optional[str] = None
    camera_angle: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    mood: Optional[str] = None
    notes: Optional[str] = None
    thumbnail_url: Optional[str] = None


class GenerationStartRequest(CamelModel):
    prompt: Optional[str] = Field(default=None, max_length=MAX_PROMPT_LENGTH)


class GenerationState(CamelModel):
    shot_id: str
    task_id: Optional[str] = None
    status: Optional[GenerationStatus] = None
    is_generating: bool = False
    progress_ratio: float = 0.0
    progress_text: Optional[str] = None
    video_url: Optional[str] = None
    error: Optional[str] = None


class RunwayGenerateIn(CamelModel):
    prompt: Optional[str] = None
    duration: Optional[int] = None
    ratio: Optional[str] = None
    seed: Optional[int] = None
    watermark: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, alias="image_url")
