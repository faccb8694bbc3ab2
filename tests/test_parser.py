from datetime import datetime, timezone

import pytest

from storyboard_studio.storyboard.parser import (
    ParseFailureReason,
    StoryboardParseError,
    extract_storyboard_payload,
    parse_storyboard,
)


def test_parses_fenced_json_block(two_shot_message):
    storyboard = parse_storyboard(two_shot_message)

    assert storyboard is not None
    assert storyboard.title == "Harbor Morning"
    assert storyboard.description == "A quiet harbor wakes up"
    assert storyboard.style == "cinematic"
    assert storyboard.mood == "calm"
    assert [shot.description for shot in storyboard.shots] == ["A", "B"]
    assert storyboard.shots[0].camera_angle == "Wide Shot"
    assert storyboard.shots[0].mood == "calm"
    assert storyboard.shots[1].notes == "hold on the boats"


def test_cumulative_timing_scenario():
    content = '{"shots":[{"description":"A","duration":5},{"description":"B","duration":10}]}'
    storyboard = parse_storyboard(content)

    assert storyboard is not None
    assert storyboard.shots[0].timing.start == 0
    assert storyboard.shots[0].timing.end == 5
    assert storyboard.shots[1].timing.start == 5
    assert storyboard.shots[1].timing.end == 15
    assert storyboard.total_duration == 15


def test_timing_is_contiguous_for_many_shots():
    content = """```json
{"shots": [{"duration": 5}, {"duration": 10}, {"duration": 3}, {}, {"duration": 2.5}]}
```"""
    storyboard = parse_storyboard(content)

    assert storyboard is not None
    durations = [5, 10, 3, 5, 2.5]
    offset = 0
    for shot, duration in zip(storyboard.shots, durations):
        assert shot.duration == duration
        assert shot.timing.start == offset
        assert shot.timing.end == offset + duration
        offset += duration
    assert storyboard.total_duration == storyboard.shots[-1].timing.end == 25.5


def test_raw_json_without_code_fence():
    content = """
Sure! Here it is:
{
  "title": "Test Storyboard",
  "shots": [
    {"description": "Scene 1", "duration": 5}
  ]
}
"""
    storyboard = parse_storyboard(content)

    assert storyboard is not None
    assert storyboard.title == "Test Storyboard"
    assert len(storyboard.shots) == 1


def test_defaults_for_missing_fields():
    storyboard = parse_storyboard('```json\n{"shots": [{"description": "Scene 1"}]}\n```')

    assert storyboard is not None
    shot = storyboard.shots[0]
    assert storyboard.title == "Untitled Storyboard"
    assert storyboard.description == ""
    assert storyboard.style is None
    assert shot.duration == 5
    assert shot.camera_angle == "Medium Shot"
    assert shot.runway_prompt == "Scene 1"
    assert shot.mood is None
    assert shot.notes is None
    assert shot.status is None
    assert shot.task_id is None


def test_runway_prompt_prefers_explicit_value():
    storyboard = parse_storyboard(
        '```json\n{"shots": [{"description": "A sunset", "runwayPrompt": "Golden hour sunset, slow pan"}]}\n```'
    )

    assert storyboard is not None
    assert storyboard.shots[0].description == "A sunset"
    assert storyboard.shots[0].runway_prompt == "Golden hour sunset, slow pan"


def test_runway_prompt_empty_without_description():
    storyboard = parse_storyboard('```json\n{"shots": [{"duration": 4}]}\n```')

    assert storyboard is not None
    assert storyboard.shots[0].description == ""
    assert storyboard.shots[0].runway_prompt == ""


def test_zero_duration_is_replaced_by_default():
    # an explicit 0 counts as "not provided"
    storyboard = parse_storyboard('```json\n{"shots": [{"description": "A", "duration": 0}, {"duration": 2}]}\n```')

    assert storyboard is not None
    assert storyboard.shots[0].duration == 5
    assert storyboard.shots[0].timing.end == 5
    assert storyboard.shots[1].timing.start == 5
    assert storyboard.total_duration == 7


def test_empty_shots_array():
    storyboard = parse_storyboard('{"shots": []}')

    assert storyboard is not None
    assert storyboard.shots == []
    assert storyboard.total_duration == 0


def test_numbers_ids_and_timestamps():
    before = datetime.now(timezone.utc)
    storyboard = parse_storyboard('```json\n{"shots": [{"description": "1"}, {"description": "2"}, {"description": "3"}]}\n```')
    after = datetime.now(timezone.utc)

    assert storyboard is not None
    assert [shot.number for shot in storyboard.shots] == [1, 2, 3]
    ids = {shot.id for shot in storyboard.shots}
    assert len(ids) == 3
    assert storyboard.id not in ids
    for shot in storyboard.shots:
        assert before <= shot.created_at <= after
        assert before <= shot.updated_at <= after


def test_ignores_llm_supplied_numbers_and_totals():
    content = '```json\n{"totalDuration": 99, "shots": [{"number": 7, "duration": 3}]}\n```'
    storyboard = parse_storyboard(content)

    assert storyboard is not None
    assert storyboard.shots[0].number == 1
    assert storyboard.total_duration == 3


@pytest.mark.parametrize(
    "content",
    [
        "This is just a regular message with no JSON",
        "```json\n{ invalid json here }\n```",
        '```json\n{"title": "No shots"}\n```',
        '```json\n{"title": "Bad shots", "shots": "not an array"}\n```',
        '```json\n["shots"]\n```',
        '```json\n{"shots": [1, 2]}\n```',
        "",
    ],
)
def test_returns_none_instead_of_raising(content):
    assert parse_storyboard(content) is None


def test_parse_failure_is_logged(caplog):
    with caplog.at_level("WARNING", logger="storyboard_studio.storyboard.parser"):
        assert parse_storyboard("```json\n{ broken\n```") is None

    assert "invalid_json" in caplog.text


@pytest.mark.parametrize(
    ("content", "reason"),
    [
        ("no json at all", ParseFailureReason.NOT_FOUND),
        ("```json\n{oops}\n```", ParseFailureReason.INVALID_JSON),
        ('```json\n{"shots": {}}\n```', ParseFailureReason.INVALID_SHAPE),
    ],
)
def test_extract_payload_failure_reasons(content, reason):
    with pytest.raises(StoryboardParseError) as excinfo:
        extract_storyboard_payload(content)
    assert excinfo.value.reason is reason


def test_fenced_block_wins_over_raw_object():
    content = '{"shots": [{"description": "raw"}]}\n```json\n{"shots": [{"description": "fenced"}]}\n```'
    storyboard = parse_storyboard(content)

    assert storyboard is not None
    assert storyboard.shots[0].description == "fenced"


def test_brace_scan_stops_at_first_closing_brace_after_array():
    # Known limitation of the heuristic scan: a nested object after the shots
    # array truncates the candidate, which then fails to decode.
    content = 'Plan: {"shots": [{"description": "A"}], "meta": {"author": "x"}}'

    assert parse_storyboard(content) is None
