"""Self-correcting vision board generation loop."""

from .schemas import (
    Aesthetic,
    Attempt,
    BoardRecord,
    BoardType,
    CapabilitiesReport,
    EvaluationResult,
    GenerationRequest,
    LayoutStyle,
    RunResult,
    StreamEvent,
)
from .composer import PromptComposer
from .generator import ImageSynthesizer
from .critic import QualityEvaluator, parse_evaluation
from .pipeline import RetryOrchestrator, RunState, build_orchestrator
from .streaming import ProgressStreamer, stream_run
from .storage import FileArtifactSink

__all__ = [
    "Aesthetic",
    "Attempt",
    "BoardRecord",
    "BoardType",
    "CapabilitiesReport",
    "EvaluationResult",
    "GenerationRequest",
    "LayoutStyle",
    "RunResult",
    "StreamEvent",
    "PromptComposer",
    "ImageSynthesizer",
    "QualityEvaluator",
    "parse_evaluation",
    "RetryOrchestrator",
    "RunState",
    "build_orchestrator",
    "ProgressStreamer",
    "stream_run",
    "FileArtifactSink",
]
