from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .models import Message, MessageRole, Shot, Storyboard
from .storyboard.parser import recompute_timing, renumber, total_duration
from .utils.io import utcnow

logger = logging.getLogger(__name__)

# Derived or identity fields that only the store itself may change.
PROTECTED_SHOT_FIELDS = frozenset({"id", "number", "timing", "created_at", "updated_at"})


class StoryboardNotFoundError(Exception):
    pass


class ShotNotFoundError(Exception):
    pass


class StoryboardStore:
    """In-memory application state: chat transcript, storyboard, selection.

    All storyboard mutations go through these methods so shot numbering,
    timing windows and the total duration stay consistent.
    """

    def __init__(self) -> None:
        self.messages: List[Message] = []
        self.storyboard: Optional[Storyboard] = None
        self.selected_shot_id: Optional[str] = None

    # messages

    def add_message(self, role: MessageRole | str, content: str) -> Message:
        message = Message(role=MessageRole(role), content=content)
        self.messages.append(message)
        return message

    def update_message(self, message_id: str, content: str) -> Message:
        for message in self.messages:
            if message.id == message_id:
                message.content = content
                return message
        raise KeyError(f"Message {message_id} not found")

    def clear_messages(self) -> None:
        self.messages = []

    # storyboard

    def set_storyboard(self, storyboard: Storyboard) -> Storyboard:
        self.storyboard = storyboard
        if self.selected_shot_id and self.find_shot(self.selected_shot_id) is None:
            self.selected_shot_id = None
        logger.info("Storyboard replaced: '%s' (%d shots)", storyboard.title, len(storyboard.shots))
        return storyboard

    def require_storyboard(self) -> Storyboard:
        if self.storyboard is None:
            raise StoryboardNotFoundError("No storyboard loaded")
        return self.storyboard

    def find_shot(self, shot_id: str) -> Optional[Shot]:
        if self.storyboard is None:
            return None
        for shot in self.storyboard.shots:
            if shot.id == shot_id:
                return shot
        return None

    def get_shot(self, shot_id: str) -> Shot:
        storyboard = self.require_storyboard()
        shot = self.find_shot(shot_id)
        if shot is None:
            raise ShotNotFoundError(f"Shot {shot_id} not found in storyboard {storyboard.id}")
        return shot

    def update_shot(self, shot_id: str, updates: Dict[str, Any]) -> Shot:
        """Apply field updates to a shot in place.

        Changing ``duration`` re-derives every timing window.
        """
        shot = self.get_shot(shot_id)
        protected = PROTECTED_SHOT_FIELDS.intersection(updates)
        if protected:
            raise ValueError(f"Cannot update derived shot fields: {', '.join(sorted(protected))}")
        unknown = set(updates) - set(Shot.model_fields)
        if unknown:
            raise ValueError(f"Unknown shot fields: {', '.join(sorted(unknown))}")

        for field, value in updates.items():
            setattr(shot, field, value)
        shot.updated_at = utcnow()

        if "duration" in updates:
            self._commit_order(self.require_storyboard().shots)
        return shot

    def reorder_shots(self, shot_ids: Sequence[str]) -> Storyboard:
        storyboard = self.require_storyboard()
        by_id = {shot.id: shot for shot in storyboard.shots}
        if len(shot_ids) != len(by_id) or set(shot_ids) != set(by_id):
            raise ValueError("Reorder must list every shot id exactly once")

        self._commit_order([by_id[shot_id] for shot_id in shot_ids])
        return storyboard

    def add_shot(self, shot: Shot) -> Shot:
        storyboard = self.require_storyboard()
        if self.find_shot(shot.id) is not None:
            raise ValueError(f"Shot {shot.id} already exists")
        self._commit_order([*storyboard.shots, shot])
        return shot

    def remove_shot(self, shot_id: str) -> Shot:
        storyboard = self.require_storyboard()
        shot = self.get_shot(shot_id)
        self._commit_order([s for s in storyboard.shots if s.id != shot_id])
        if self.selected_shot_id == shot_id:
            self.selected_shot_id = None
        return shot

    def select_shot(self, shot_id: Optional[str]) -> None:
        if shot_id is not None:
            self.get_shot(shot_id)
        self.selected_shot_id = shot_id

    def _commit_order(self, shots: Sequence[Shot]) -> None:
        """Adopt ``shots`` as the storyboard order, renumbering and retiming them in place."""
        storyboard = self.require_storyboard()
        for shot, placed in zip(shots, recompute_timing(renumber(shots))):
            shot.number = placed.number
            shot.timing = placed.timing
            shot.updated_at = placed.updated_at
        storyboard.shots = list(shots)
        storyboard.total_duration = total_duration(storyboard.shots)
        storyboard.updated_at = utcnow()
