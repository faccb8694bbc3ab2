from __future__ import annotations

import pytest

from storyboard_studio.storyboard.parser import parse_storyboard
from storyboard_studio.store import StoryboardStore

TWO_SHOT_MESSAGE = """Here is a first pass at your storyboard:

```json
{
  "title": "Harbor Morning",
  "description": "A quiet harbor wakes up",
  "style": "cinematic",
  "mood": "calm",
  "shots": [
    {"description": "A", "duration": 5, "cameraAngle": "Wide Shot", "mood": "calm"},
    {"description": "B", "duration": 10, "runwayPrompt": "Slow dolly along the pier", "notes": "hold on the boats"}
  ]
}
```

Want me to adjust the pacing?"""


@pytest.fixture
def two_shot_message() -> str:
    return TWO_SHOT_MESSAGE


@pytest.fixture
def store() -> StoryboardStore:
    store = StoryboardStore()
    storyboard = parse_storyboard(TWO_SHOT_MESSAGE)
    assert storyboard is not None
    store.set_storyboard(storyboard)
    return store
