"""Shared stubs and fixtures for the vision board tests."""

from __future__ import annotations

from io import BytesIO
from typing import Iterable

import pytest
from PIL import Image

from visionboard.composer import PromptComposer
from visionboard.critic import QualityEvaluator
from visionboard.errors import ArtifactSaveError, CapabilityError
from visionboard.generator import ImageSynthesizer
from visionboard.pipeline import RetryOrchestrator
from visionboard.schemas import ArtifactContext, GenerationRequest
from visionboard.storage import FileArtifactSink


def _tiny_png() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), "white").save(buffer, format="PNG")
    return buffer.getvalue()


PNG_BYTES = _tiny_png()


class StubTextGenerator:
    """Returns canned prompts, or raises when given an exception."""

    def __init__(self, *responses: str | Exception):
        self.responses = list(responses) or ["a generated prompt"]
        self.calls: list[tuple[str, str]] = []

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        response = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


class StubImageGenerator:
    """Scripted image generator: ``True`` yields bytes, ``False`` fails."""

    def __init__(self, outcomes: Iterable[bool] = (True,)):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, str]] = []

    def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> bytes:
        self.calls.append((prompt, aspect_ratio))
        index = min(len(self.calls), len(self.outcomes)) - 1
        if not self.outcomes[index]:
            raise CapabilityError("stub", f"generation {len(self.calls)} failed")
        return PNG_BYTES + str(len(self.calls)).encode()


class StubImageEvaluator:
    """Scores each call with the next scripted score."""

    def __init__(self, scores: Iterable[int] = (9,)):
        self.scores = list(scores)
        self.calls: list[tuple[bytes, str]] = []

    def evaluate(self, image_bytes: bytes, rubric_prompt: str) -> str:
        self.calls.append((image_bytes, rubric_prompt))
        score = self.scores[min(len(self.calls), len(self.scores)) - 1]
        return (
            f"SCORE: {score}\n"
            f"FEEDBACK: attempt scored {score}\n"
            f"IMPROVEMENTS: improve {len(self.calls)}"
        )


class FailingEvaluator:
    def evaluate(self, image_bytes: bytes, rubric_prompt: str) -> str:
        raise CapabilityError("stub", "vision model down")


class MemorySink:
    """Keeps saved artifacts in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: list[tuple[bytes, ArtifactContext]] = []

    def save(self, image_bytes: bytes, context: ArtifactContext) -> str:
        if self.fail:
            raise ArtifactSaveError("disk full")
        self.saved.append((image_bytes, context))
        return f"memory://{context.request_id}"


class Collector:
    """Callable event sink that records everything emitted."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


@pytest.fixture
def request_payload() -> dict:
    return {
        "requestId": "board-test",
        "type": "goal",
        "title": "Summer of Strength",
        "goals": ["Run a 10k", "Read 12 books"],
        "tasks": ["Morning run", "Read 20 pages", "Stretch", "Meal prep"],
        "style": "vertical",
        "aesthetic": "sketch",
        "profileId": "alice",
    }


@pytest.fixture
def generation_request(request_payload) -> GenerationRequest:
    return GenerationRequest.model_validate(request_payload)


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def file_sink(tmp_path) -> FileArtifactSink:
    return FileArtifactSink(root=tmp_path / "visionboards")


def make_orchestrator(
    synth_outcomes: Iterable[bool] = (True,),
    scores: Iterable[int] = (9,),
    sink=None,
    text_generator=None,
    evaluator=None,
    **kwargs,
) -> RetryOrchestrator:
    return RetryOrchestrator(
        composer=PromptComposer(text_generator),
        synthesizer=ImageSynthesizer(StubImageGenerator(synth_outcomes), timeout=5),
        evaluator=QualityEvaluator(evaluator or StubImageEvaluator(scores)),
        sink=sink if sink is not None else MemorySink(),
        max_attempts=kwargs.pop("max_attempts", 3),
        accept_threshold=kwargs.pop("accept_threshold", 7),
    )
