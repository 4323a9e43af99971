"""HTTP entry point: streaming generation and board records."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import FileResponse, StreamingResponse

from .errors import BoardNotFoundError
from .pipeline import RetryOrchestrator, build_orchestrator
from .schemas import BoardRecord, CapabilitiesReport, GenerationRequest
from .storage import FileArtifactSink
from .streaming import encode_sse, stream_run

logger = logging.getLogger(__name__)


def create_app(
    orchestrator: Optional[RetryOrchestrator] = None,
    storage: Optional[FileArtifactSink] = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        orchestrator: Shared orchestrator. Built from configuration if None.
        storage: Board storage used by the read routes. Defaults to the
            orchestrator's sink when that is file storage.
    """
    if orchestrator is None:
        storage = storage or FileArtifactSink()
        orchestrator = build_orchestrator(sink=storage)
    if storage is None:
        storage = orchestrator.sink if isinstance(orchestrator.sink, FileArtifactSink) else FileArtifactSink()

    app = FastAPI(title="Vision Board Generator")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/visionboards/generate")
    def generate(request: GenerationRequest):
        """Stream generation events as server-sent events."""
        if storage.exists(request.request_id, request.owner_id):
            raise HTTPException(status_code=409, detail=f"Vision board {request.request_id} already exists")
        events = (encode_sse(event) for event in stream_run(orchestrator, request))
        return StreamingResponse(
            events,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache, no-transform", "Connection": "keep-alive"},
        )

    @app.get("/api/visionboards/generate", response_model=CapabilitiesReport, response_model_by_alias=True)
    def capabilities():
        return orchestrator.capabilities()

    @app.get("/api/visionboards")
    def list_boards(profile_id: Optional[str] = Query(default=None, alias="profileId")):
        try:
            boards = storage.list_boards(profile_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"visionboards": [b.model_dump(mode="json", by_alias=True) for b in boards]}

    @app.get("/api/visionboards/{board_id}", response_model=BoardRecord, response_model_by_alias=True)
    def get_board(board_id: str, profile_id: Optional[str] = Query(default=None, alias="profileId")):
        try:
            return storage.get_board(board_id, profile_id)
        except (BoardNotFoundError, ValueError):
            raise HTTPException(status_code=404, detail="Vision board not found")

    @app.delete("/api/visionboards/{board_id}")
    def delete_board(board_id: str, profile_id: Optional[str] = Query(default=None, alias="profileId")):
        try:
            storage.delete_board(board_id, profile_id)
        except (BoardNotFoundError, ValueError):
            raise HTTPException(status_code=404, detail="Vision board not found")
        return {"success": True}

    @app.get("/api/assets/visionboards/{board_id}/{filename}")
    def board_image(
        board_id: str,
        filename: str,
        profile_id: Optional[str] = Query(default=None, alias="profileId"),
    ):
        try:
            path = storage.resolve_asset(board_id, filename, profile_id)
        except (BoardNotFoundError, ValueError):
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(path, media_type="image/png")

    return app
