"""File-backed storage for accepted vision boards."""

import json
import logging
import shutil
import time
from pathlib import Path
from typing import Optional

import config

from .errors import ArtifactSaveError, BoardNotFoundError
from .schemas import ArtifactContext, BoardRecord, is_safe_name

logger = logging.getLogger(__name__)

ASSET_URL_PREFIX = "/api/assets/visionboards"


def _check_name(value: str, kind: str) -> str:
    if not is_safe_name(value):
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


class FileArtifactSink:
    """Stores board images and JSON records under a root directory.

    Layout::

        <root>/profiles/<owner>/<board_id>.json
        <root>/profiles/<owner>/<board_id>/images/visionboard-<ms>.png
        <root>/shared/...                    (boards without an owner)
    """

    def __init__(self, root: Path = config.VISIONBOARDS_DIR):
        self.root = Path(root)

    def boards_dir(self, owner_id: Optional[str] = None) -> Path:
        """Directory holding the records for one owner."""
        if owner_id:
            return self.root / "profiles" / _check_name(owner_id, "profile id")
        return self.root / "shared"

    def _record_path(self, board_id: str, owner_id: Optional[str]) -> Path:
        return self.boards_dir(owner_id) / f"{_check_name(board_id, 'board id')}.json"

    def save(self, image_bytes: bytes, context: ArtifactContext) -> str:
        """Write the image and its record; return the image locator."""
        try:
            board_id = _check_name(context.request_id, "board id")
            board_dir = self.boards_dir(context.owner_id)
            if (board_dir / f"{board_id}.json").exists():
                raise ArtifactSaveError(f"Vision board {board_id} already exists")
            images_dir = board_dir / board_id / "images"
            images_dir.mkdir(parents=True, exist_ok=True)

            filename = f"visionboard-{int(time.time() * 1000)}.png"
            (images_dir / filename).write_bytes(image_bytes)
            locator = f"{ASSET_URL_PREFIX}/{board_id}/{filename}"
            if context.owner_id:
                locator += f"?profileId={context.owner_id}"

            record = BoardRecord(id=board_id, image_url=locator, **context.model_dump())
            with open(board_dir / f"{board_id}.json", "w") as f:
                json.dump(record.model_dump(mode="json", by_alias=True), f, indent=2)
        except (OSError, ValueError) as e:
            raise ArtifactSaveError(f"Could not store vision board {context.request_id}: {e}") from e

        logger.debug("Stored %s (%d bytes) in %s", filename, len(image_bytes), images_dir)
        return locator

    def list_boards(self, owner_id: Optional[str] = None) -> list[BoardRecord]:
        """All stored records for an owner, newest first."""
        boards_dir = self.boards_dir(owner_id)
        if not boards_dir.is_dir():
            return []

        records = []
        for path in boards_dir.glob("*.json"):
            try:
                records.append(BoardRecord.model_validate_json(path.read_text()))
            except ValueError as e:
                logger.warning("Skipping unreadable board record %s: %s", path.name, e)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def exists(self, board_id: str, owner_id: Optional[str] = None) -> bool:
        return self._record_path(board_id, owner_id).is_file()

    def get_board(self, board_id: str, owner_id: Optional[str] = None) -> BoardRecord:
        path = self._record_path(board_id, owner_id)
        if not path.is_file():
            raise BoardNotFoundError(board_id)
        return BoardRecord.model_validate_json(path.read_text())

    def delete_board(self, board_id: str, owner_id: Optional[str] = None) -> None:
        """Delete a record and its images."""
        path = self._record_path(board_id, owner_id)
        if not path.is_file():
            raise BoardNotFoundError(board_id)
        path.unlink()
        shutil.rmtree(path.with_suffix(""), ignore_errors=True)

    def resolve_asset(self, board_id: str, filename: str, owner_id: Optional[str] = None) -> Path:
        """Path of a stored image, for serving."""
        path = (
            self.boards_dir(owner_id)
            / _check_name(board_id, "board id")
            / "images"
            / _check_name(filename, "filename")
        )
        if not path.is_file():
            raise BoardNotFoundError(board_id)
        return path

    def image_path(self, record: BoardRecord) -> Path:
        """Path of the image a record points at."""
        filename = record.image_url.split("?", 1)[0].rsplit("/", 1)[-1]
        return self.resolve_asset(record.id, filename, record.owner_id)
