"""Tests for request validation and event wire format."""

import pytest
from pydantic import ValidationError

from visionboard.schemas import (
    Aesthetic,
    BoardType,
    EvaluationEvent,
    GenerationRequest,
    LayoutStyle,
    SuccessEvent,
)


def test_wire_payload_parses(request_payload) -> None:
    request = GenerationRequest.model_validate(request_payload)
    assert request.board_type is BoardType.GOAL
    assert request.layout_style is LayoutStyle.VERTICAL
    assert request.aesthetic is Aesthetic.SKETCH
    assert request.owner_id == "alice"
    assert request.goals == ("Run a 10k", "Read 12 books")


def test_defaults() -> None:
    request = GenerationRequest.model_validate({"title": "Focus", "goals": ["Ship"]})
    assert request.layout_style is LayoutStyle.HORIZONTAL
    assert request.aesthetic is Aesthetic.MODERN
    assert request.board_type is BoardType.CUSTOM
    assert request.request_id.startswith("board-")
    assert request.tasks == ()


def test_null_style_uses_default() -> None:
    request = GenerationRequest.model_validate(
        {"title": "Focus", "goals": ["Ship"], "style": None, "aesthetic": None}
    )
    assert request.layout_style is LayoutStyle.HORIZONTAL
    assert request.aesthetic is Aesthetic.MODERN


@pytest.mark.parametrize("goals", [[], ["", "   "], None])
def test_requires_a_goal(goals) -> None:
    with pytest.raises(ValidationError):
        GenerationRequest.model_validate({"title": "Focus", "goals": goals})


def test_rejects_unknown_aesthetic() -> None:
    with pytest.raises(ValidationError):
        GenerationRequest.model_validate({"title": "Focus", "goals": ["a"], "aesthetic": "neon"})


def test_request_is_frozen() -> None:
    request = GenerationRequest(title="Focus", goals=["Ship"])
    with pytest.raises(ValidationError):
        request.title = "Other"


def test_flat_challenge_fields_fold_into_ref() -> None:
    request = GenerationRequest.model_validate({
        "title": "30 Days",
        "goals": ["Meditate"],
        "challengeId": "c-1",
        "challengeName": "Mindful March",
    })
    assert request.challenge.id == "c-1"
    assert request.challenge.name == "Mindful March"


def test_event_wire_format() -> None:
    event = EvaluationEvent(attempt_number=2, score=7, feedback="ok", passed_threshold=True)
    assert event.to_wire() == {
        "type": "evaluation",
        "data": {
            "attemptNumber": 2,
            "score": 7,
            "maxScore": 10,
            "feedback": "ok",
            "improvements": "",
            "passedThreshold": True,
        },
    }
    assert not event.is_terminal
    assert SuccessEvent(artifact_locator="x", final_score=7, attempts_used=1, message="m").is_terminal


@pytest.mark.parametrize(
    "field, value",
    [
        ("profileId", "alice smith"),
        ("profileId", "../bob"),
        ("profileId", ""),
        ("requestId", "board/1"),
        ("requestId", "-board"),
        ("requestId", "board..1"),
    ],
)
def test_rejects_ids_unusable_as_storage_names(request_payload, field, value) -> None:
    request_payload[field] = value
    with pytest.raises(ValidationError):
        GenerationRequest.model_validate(request_payload)


def test_accepts_safe_ids(request_payload) -> None:
    request_payload["profileId"] = "alice_01.main"
    request_payload["requestId"] = "board-7f3a"
    request = GenerationRequest.model_validate(request_payload)
    assert request.owner_id == "alice_01.main"
    assert request.request_id == "board-7f3a"
