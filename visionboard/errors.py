"""Exception hierarchy for the vision board generator."""


class VisionBoardError(Exception):
    """Base exception for vision board generation errors."""


class CapabilityError(VisionBoardError):
    """An external capability (text, image or evaluation model) failed."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class CapabilityUnavailableError(CapabilityError):
    """Raised when a capability is not configured."""


class ArtifactSaveError(VisionBoardError):
    """Raised when the accepted image or its record cannot be persisted."""


class BoardNotFoundError(VisionBoardError):
    """Raised when a stored vision board record does not exist."""

    def __init__(self, board_id: str) -> None:
        self.board_id = board_id
        super().__init__(f"Vision board not found: {board_id}")


class GenerationCancelled(VisionBoardError):
    """Raised inside a run when the caller has gone away."""
