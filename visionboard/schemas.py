"""Pydantic schemas for structured data flow in the generation loop."""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class BoardType(str, Enum):
    """What the vision board is about."""

    DAILY = "daily"
    GOAL = "goal"
    CHALLENGE = "challenge"
    CUSTOM = "custom"


class LayoutStyle(str, Enum):
    """Overall board orientation."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    SQUARE = "square"


class Aesthetic(str, Enum):
    """Visual style of the generated board."""

    SKETCH = "sketch"
    PHOTOREALISTIC = "photorealistic"
    COLLAGE = "collage"
    MODERN = "modern"
    VINTAGE = "vintage"


# Ids double as file and directory names in board storage.
SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def is_safe_name(value: str) -> bool:
    return bool(value) and SAFE_NAME_RE.match(value) is not None and ".." not in value


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_board_id() -> str:
    return f"board-{uuid.uuid4().hex[:12]}"


class ChallengeRef(CamelModel):
    """Reference to the challenge a board was generated for."""

    id: str
    name: str


class GenerationRequest(CamelModel):
    """Immutable input to one orchestration run."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    request_id: str = Field(
        default_factory=_new_board_id,
        description="Identifier of the run; also used as the board id",
    )
    board_type: BoardType = Field(default=BoardType.CUSTOM, alias="type")
    title: str = Field(..., min_length=1)
    goals: tuple[str, ...] = Field(
        ...,
        description="Ordered goals to visualize; at least one is required",
    )
    tasks: tuple[str, ...] = Field(default_factory=tuple)
    challenge: Optional[ChallengeRef] = None
    layout_style: LayoutStyle = Field(default=LayoutStyle.HORIZONTAL, alias="style")
    aesthetic: Aesthetic = Aesthetic.MODERN
    owner_id: Optional[str] = Field(default=None, alias="profileId")

    @model_validator(mode="before")
    @classmethod
    def _fold_challenge_fields(cls, data: Any) -> Any:
        # The board wizard posts the challenge as flat challengeId/challengeName keys.
        if isinstance(data, dict) and "challenge" not in data:
            challenge_id = data.get("challengeId")
            challenge_name = data.get("challengeName")
            if challenge_id or challenge_name:
                data = {
                    k: v for k, v in data.items()
                    if k not in ("challengeId", "challengeName")
                }
                data["challenge"] = {
                    "id": challenge_id or "",
                    "name": challenge_name or challenge_id,
                }
        return data

    @model_validator(mode="before")
    @classmethod
    def _drop_null_defaults(cls, data: Any) -> Any:
        # Absent and null style/aesthetic both mean "use the default".
        if isinstance(data, dict):
            data = {
                k: v for k, v in data.items()
                if not (v is None and k in ("style", "layout_style", "aesthetic", "type", "board_type"))
            }
        return data

    @field_validator("request_id", "owner_id")
    @classmethod
    def _require_safe_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_safe_name(value):
            raise ValueError("may only contain letters, digits, dots, dashes and underscores")
        return value

    @field_validator("goals", "tasks", mode="before")
    @classmethod
    def _strip_entries(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(str(v).strip() for v in value if str(v).strip())

    @field_validator("goals")
    @classmethod
    def _require_goal(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one goal is required")
        return value


class Attempt(CamelModel):
    """Record of a single loop iteration."""

    attempt_number: int = Field(..., ge=1, description="One-based attempt number")
    prompt: str
    image_produced: bool = False
    score: Optional[int] = Field(
        default=None,
        ge=0,
        le=10,
        description="Evaluation score; None when no evaluation ran",
    )
    feedback: str = ""
    improvements: str = ""

    @property
    def effective_score(self) -> int:
        """Score used for ranking; unevaluated attempts count as zero."""
        return self.score if self.score is not None else 0


class EvaluationResult(CamelModel):
    """Structured quality evaluation of a generated image."""

    score: int = Field(..., ge=0, le=10, description="Overall score from 0 to 10")
    feedback: str = Field(..., description="Human-readable explanation of the score")
    improvements: str = Field(default="", description="Suggestions for the next attempt")


class BestAttempt(BaseModel):
    """Highest-scoring attempt seen so far, with the image it produced."""

    attempt: Attempt
    image_payload: bytes = Field(..., repr=False)

    @property
    def score(self) -> int:
        return self.attempt.effective_score


class SynthesisResult(BaseModel):
    """Outcome of one image generation call."""

    ok: bool
    image_payload: Optional[bytes] = Field(default=None, repr=False)
    error: Optional[str] = None

    @classmethod
    def success(cls, image_payload: bytes) -> "SynthesisResult":
        return cls(ok=True, image_payload=image_payload)

    @classmethod
    def failure(cls, error: str) -> "SynthesisResult":
        return cls(ok=False, error=error)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class _Event(CamelModel):
    type: str

    @property
    def is_terminal(self) -> bool:
        return False

    def to_wire(self) -> dict[str, Any]:
        """Render as the ``{"type": ..., "data": {...}}`` wire object."""
        return {
            "type": self.type,
            "data": self.model_dump(mode="json", by_alias=True, exclude={"type"}),
        }


class ProgressEvent(_Event):
    type: Literal["progress"] = "progress"
    message: str
    step: int
    total_steps: int


class AttemptEvent(_Event):
    type: Literal["attempt"] = "attempt"
    attempt_number: int
    max_attempts: int
    message: str


class EvaluationEvent(_Event):
    type: Literal["evaluation"] = "evaluation"
    attempt_number: int
    score: int
    max_score: int = 10
    feedback: str
    improvements: str = ""
    passed_threshold: bool = False


class SuccessEvent(_Event):
    type: Literal["success"] = "success"
    artifact_locator: str
    final_score: int
    attempts_used: int
    message: str

    @property
    def is_terminal(self) -> bool:
        return True


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str
    attempts_used: int = 0

    @property
    def is_terminal(self) -> bool:
        return True


StreamEvent = Annotated[
    Union[ProgressEvent, AttemptEvent, EvaluationEvent, SuccessEvent, ErrorEvent],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Persistence and results
# ---------------------------------------------------------------------------


class ArtifactContext(CamelModel):
    """Metadata handed to the artifact sink with the accepted image."""

    request_id: str
    board_type: BoardType
    title: str
    goals: list[str]
    final_score: int
    attempts_used: int
    prompt: str
    feedback: str = ""
    layout_style: LayoutStyle = LayoutStyle.HORIZONTAL
    aesthetic: Aesthetic = Aesthetic.MODERN
    created_at: datetime
    owner_id: Optional[str] = None


class BoardRecord(ArtifactContext):
    """Persisted record of an accepted vision board."""

    id: str
    image_url: str


class RunResult(BaseModel):
    """Final result of one orchestration run."""

    accepted: bool
    best_attempt: Optional[Attempt] = None
    image_payload: Optional[bytes] = Field(default=None, repr=False)
    attempts: list[Attempt] = Field(default_factory=list)
    locator: Optional[str] = None
    final_state: str
    error: Optional[str] = None


class CapabilitiesReport(CamelModel):
    """Read-only description of what the generator can currently do."""

    text_generation: bool
    image_generation: bool
    evaluation: bool
    max_attempts: int
    accept_threshold: int
    board_types: list[str] = Field(default_factory=lambda: [t.value for t in BoardType])
    layout_styles: list[str] = Field(default_factory=lambda: [s.value for s in LayoutStyle])
    aesthetics: list[str] = Field(default_factory=lambda: [a.value for a in Aesthetic])
