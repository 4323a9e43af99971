"""Tests for file-backed board storage."""

from datetime import datetime, timedelta, timezone

import json

import pytest

from visionboard.errors import ArtifactSaveError, BoardNotFoundError
from visionboard.schemas import ArtifactContext, BoardType

from .conftest import PNG_BYTES, make_orchestrator


def _context(request_id: str = "board-1", owner_id: str | None = "alice", **overrides) -> ArtifactContext:
    values = dict(
        request_id=request_id,
        board_type=BoardType.GOAL,
        title="Summer of Strength",
        goals=["Run a 10k"],
        final_score=8,
        attempts_used=2,
        prompt="a prompt",
        created_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
        owner_id=owner_id,
    )
    values.update(overrides)
    return ArtifactContext(**values)


def test_save_writes_image_and_record(file_sink) -> None:
    locator = file_sink.save(PNG_BYTES, _context())

    assert locator.startswith("/api/assets/visionboards/board-1/visionboard-")
    assert locator.endswith(".png?profileId=alice")

    record_path = file_sink.root / "profiles" / "alice" / "board-1.json"
    data = json.loads(record_path.read_text())
    assert data["id"] == "board-1"
    assert data["imageUrl"] == locator
    assert data["finalScore"] == 8
    assert data["attemptsUsed"] == 2
    assert data["boardType"] == "goal"
    assert data["ownerId"] == "alice"

    record = file_sink.get_board("board-1", "alice")
    assert file_sink.image_path(record).read_bytes() == PNG_BYTES


def test_shared_boards_without_owner(file_sink) -> None:
    locator = file_sink.save(PNG_BYTES, _context(owner_id=None))

    assert "?" not in locator
    assert (file_sink.root / "shared" / "board-1.json").is_file()
    assert [b.id for b in file_sink.list_boards()] == ["board-1"]
    assert file_sink.list_boards("alice") == []


def test_list_boards_newest_first(file_sink) -> None:
    base = datetime(2026, 6, 1, tzinfo=timezone.utc)
    file_sink.save(PNG_BYTES, _context("board-old", created_at=base))
    file_sink.save(PNG_BYTES, _context("board-new", created_at=base + timedelta(days=1)))

    assert [b.id for b in file_sink.list_boards("alice")] == ["board-new", "board-old"]


def test_list_boards_skips_corrupt_records(file_sink) -> None:
    file_sink.save(PNG_BYTES, _context())
    (file_sink.boards_dir("alice") / "broken.json").write_text("{not json")

    assert [b.id for b in file_sink.list_boards("alice")] == ["board-1"]


def test_delete_board_removes_images(file_sink) -> None:
    file_sink.save(PNG_BYTES, _context())

    file_sink.delete_board("board-1", "alice")

    assert not (file_sink.boards_dir("alice") / "board-1").exists()
    with pytest.raises(BoardNotFoundError):
        file_sink.get_board("board-1", "alice")
    with pytest.raises(BoardNotFoundError):
        file_sink.delete_board("board-1", "alice")


def test_rejects_path_traversal(file_sink) -> None:
    with pytest.raises(ArtifactSaveError):
        file_sink.save(PNG_BYTES, _context(request_id="../escape"))
    with pytest.raises(ValueError):
        file_sink.resolve_asset("board-1", "../../secret.png")


def test_orchestrator_persists_through_file_sink(file_sink, generation_request, collector) -> None:
    result = make_orchestrator(scores=[9], sink=file_sink).run(generation_request, collector)

    assert result.accepted
    record = file_sink.get_board(generation_request.request_id, "alice")
    assert record.image_url == result.locator == collector.events[-1].artifact_locator
    assert record.goals == ["Run a 10k", "Read 12 books"]
    assert record.final_score == 9


def test_save_refuses_to_overwrite_existing_board(file_sink) -> None:
    first = file_sink.save(PNG_BYTES, _context())

    with pytest.raises(ArtifactSaveError, match="already exists"):
        file_sink.save(PNG_BYTES + b"new", _context(title="Replacement"))

    record = file_sink.get_board("board-1", "alice")
    assert record.image_url == first
    assert record.title == "Summer of Strength"
    assert file_sink.exists("board-1", "alice")
    assert not file_sink.exists("board-2", "alice")
