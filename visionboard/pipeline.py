"""Main generation loop orchestrator."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import config

from .capabilities import ArtifactSink, describe_capabilities
from .composer import PromptComposer
from .critic import QualityEvaluator
from .errors import GenerationCancelled
from .generator import ImageSynthesizer
from .llm import build_image_evaluator, build_text_generator
from .schemas import (
    ArtifactContext,
    Attempt,
    AttemptEvent,
    BestAttempt,
    CapabilitiesReport,
    ErrorEvent,
    EvaluationEvent,
    GenerationRequest,
    ProgressEvent,
    RunResult,
    StreamEvent,
    SuccessEvent,
)
from .storage import FileArtifactSink

logger = logging.getLogger(__name__)

EmitFn = Callable[[StreamEvent], None]

TOTAL_STEPS = 4
MAX_SCORE = 10


class RunState(str, Enum):
    """States of one orchestration run."""

    STARTING = "starting"
    COMPOSING = "composing"
    SYNTHESIZING = "synthesizing"
    EVALUATING = "evaluating"
    SKIP_EVAL = "skip_eval"
    DECIDING = "deciding"
    ACCEPT = "accept"
    CONTINUE = "continue"
    EXHAUSTED = "exhausted"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class _Run:
    """Mutable state owned by a single call to ``run``."""

    request: GenerationRequest
    emit: EmitFn
    cancel: Optional[threading.Event] = None
    state: RunState = RunState.STARTING
    attempts: list[Attempt] = field(default_factory=list)
    best: Optional[BestAttempt] = None
    feedback: Optional[str] = None


class RetryOrchestrator:
    """Drives compose -> synthesize -> evaluate in a bounded retry loop.

    The loop stops early once an attempt scores at least
    ``accept_threshold``. Whatever happens, the best-scoring image seen
    during the run is the one that gets saved; the threshold only decides
    when to stop trying, not whether to keep the result.
    """

    def __init__(
        self,
        composer: Optional[PromptComposer] = None,
        synthesizer: Optional[ImageSynthesizer] = None,
        evaluator: Optional[QualityEvaluator] = None,
        sink: Optional[ArtifactSink] = None,
        max_attempts: int = config.MAX_ATTEMPTS,
        accept_threshold: int = config.ACCEPT_THRESHOLD,
    ):
        """Initialize the orchestrator.

        Args:
            composer: Prompt composer. Uses local templates if None.
            synthesizer: Image synthesizer. An unconfigured one if None.
            evaluator: Quality evaluator. Neutral fallback scores if None.
            sink: Where accepted boards are stored. File storage if None.
            max_attempts: Maximum number of loop iterations.
            accept_threshold: Stop once an attempt scores >= this value.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.composer = composer or PromptComposer()
        self.synthesizer = synthesizer or ImageSynthesizer()
        self.evaluator = evaluator or QualityEvaluator()
        self.sink = sink or FileArtifactSink()
        self.max_attempts = max_attempts
        self.accept_threshold = accept_threshold

    def capabilities(self) -> CapabilitiesReport:
        """Describe the capabilities this orchestrator was built with."""
        return describe_capabilities(
            text_generator=self.composer.text_generator,
            image_generator=self.synthesizer.image_generator,
            image_evaluator=self.evaluator.image_evaluator,
            max_attempts=self.max_attempts,
            accept_threshold=self.accept_threshold,
        )

    def _transition(self, run: _Run, state: RunState, attempt: int | None = None) -> None:
        logger.debug(
            "[%s] %s -> %s%s",
            run.request.request_id,
            run.state.value,
            state.value,
            f" (attempt {attempt})" if attempt else "",
        )
        run.state = state

    def _checkpoint(self, run: _Run) -> None:
        """Stop before the next phase if the caller has gone away."""
        if run.cancel is not None and run.cancel.is_set():
            raise GenerationCancelled(run.request.request_id)

    def _progress(self, run: _Run, message: str, step: int) -> None:
        run.emit(ProgressEvent(message=message, step=step, total_steps=TOTAL_STEPS))

    def run(
        self,
        request: GenerationRequest,
        emit: EmitFn,
        cancel: Optional[threading.Event] = None,
    ) -> RunResult:
        """Run the generation loop for one request.

        Args:
            request: What to generate.
            emit: Called with every stream event, in order, as it happens.
            cancel: Optional flag; once set, the run stops before its next phase.

        Returns:
            The run result. Exactly one terminal event has been emitted.
        """
        run = _Run(request=request, emit=emit, cancel=cancel)
        logger.info("[%s] Starting %s vision board: %s", request.request_id, request.board_type.value, request.title)
        self._progress(run, "Starting vision board generation...", 1)

        try:
            for attempt_number in range(1, self.max_attempts + 1):
                if self._attempt(run, attempt_number):
                    break
        except GenerationCancelled:
            logger.info("[%s] Generation cancelled after %d attempt(s)", request.request_id, len(run.attempts))
            return self._fail(run, "Generation cancelled")

        return self._finalize(run)

    def _attempt(self, run: _Run, attempt_number: int) -> bool:
        """Run one iteration. Returns True when the loop should stop."""
        self._checkpoint(run)
        self._transition(run, RunState.COMPOSING, attempt_number)
        run.emit(AttemptEvent(
            attempt_number=attempt_number,
            max_attempts=self.max_attempts,
            message=(
                "Generating initial vision board prompt..."
                if attempt_number == 1
                else f"Attempt {attempt_number}: Improving based on feedback..."
            ),
        ))
        self._progress(run, "Creating optimized vision board prompt...", 2)
        prompt = self.composer.compose(run.request, run.feedback)

        self._checkpoint(run)
        self._transition(run, RunState.SYNTHESIZING, attempt_number)
        self._progress(run, "Generating vision board image...", 3)
        synthesis = self.synthesizer.synthesize(prompt, run.request.layout_style)

        if not synthesis.ok:
            self._transition(run, RunState.SKIP_EVAL, attempt_number)
            feedback = f"Image generation failed: {synthesis.error}"
            run.attempts.append(Attempt(
                attempt_number=attempt_number,
                prompt=prompt,
                image_produced=False,
                feedback=feedback,
            ))
            run.emit(EvaluationEvent(
                attempt_number=attempt_number,
                score=0,
                max_score=MAX_SCORE,
                feedback=feedback,
                passed_threshold=False,
            ))
            self._decide_retry(run, attempt_number)
            return False

        self._checkpoint(run)
        self._transition(run, RunState.EVALUATING, attempt_number)
        self._progress(run, "Evaluating vision board quality...", 4)
        evaluation = self.evaluator.evaluate(synthesis.image_payload, prompt, run.request.goals)

        attempt = Attempt(
            attempt_number=attempt_number,
            prompt=prompt,
            image_produced=True,
            score=evaluation.score,
            feedback=evaluation.feedback,
            improvements=evaluation.improvements,
        )
        run.attempts.append(attempt)

        passed = evaluation.score >= self.accept_threshold
        run.emit(EvaluationEvent(
            attempt_number=attempt_number,
            score=evaluation.score,
            max_score=MAX_SCORE,
            feedback=evaluation.feedback,
            improvements=evaluation.improvements,
            passed_threshold=passed,
        ))
        logger.info("[%s] Attempt %d scored %d/%d", run.request.request_id, attempt_number, evaluation.score, MAX_SCORE)

        self._transition(run, RunState.DECIDING, attempt_number)
        # Ties keep the earlier attempt.
        if run.best is None or attempt.effective_score > run.best.score:
            run.best = BestAttempt(attempt=attempt, image_payload=synthesis.image_payload)

        if passed:
            self._transition(run, RunState.ACCEPT, attempt_number)
            self._progress(run, f"Vision board passed quality check ({evaluation.score}/{MAX_SCORE})!", 4)
            return True

        run.feedback = (
            f"Score: {evaluation.score}/{MAX_SCORE}\n"
            f"Feedback: {evaluation.feedback}\n"
            f"Improvements needed: {evaluation.improvements}"
        )
        if self._decide_retry(run, attempt_number):
            self._progress(
                run,
                f"Score {evaluation.score}/{MAX_SCORE} below threshold. Retrying with improvements...",
                1,
            )
        return False

    def _decide_retry(self, run: _Run, attempt_number: int) -> bool:
        if attempt_number < self.max_attempts:
            self._transition(run, RunState.CONTINUE, attempt_number)
            return True
        self._transition(run, RunState.EXHAUSTED, attempt_number)
        return False

    def _fail(self, run: _Run, message: str) -> RunResult:
        self._transition(run, RunState.FAILED)
        run.emit(ErrorEvent(message=message, attempts_used=len(run.attempts)))
        return RunResult(
            accepted=False,
            best_attempt=run.best.attempt if run.best else None,
            attempts=run.attempts,
            final_state=run.state.value,
            error=message,
        )

    def _finalize(self, run: _Run) -> RunResult:
        self._transition(run, RunState.FINALIZING)
        request = run.request
        attempts_used = len(run.attempts)

        if run.best is None:
            logger.warning("[%s] No image produced in %d attempt(s)", request.request_id, attempts_used)
            return self._fail(run, "Failed to generate vision board after all attempts")

        best = run.best
        context = ArtifactContext(
            request_id=request.request_id,
            board_type=request.board_type,
            title=request.title,
            goals=list(request.goals),
            final_score=best.score,
            attempts_used=attempts_used,
            prompt=best.attempt.prompt,
            feedback=best.attempt.feedback,
            layout_style=request.layout_style,
            aesthetic=request.aesthetic,
            created_at=datetime.now(timezone.utc),
            owner_id=request.owner_id,
        )

        try:
            locator = self.sink.save(best.image_payload, context)
        except Exception as e:
            logger.exception("[%s] Saving the vision board failed", request.request_id)
            return self._fail(run, f"Failed to save vision board: {e}")
        if not locator:
            return self._fail(run, "Failed to save vision board: no locator returned")

        self._transition(run, RunState.SUCCEEDED)
        run.emit(SuccessEvent(
            artifact_locator=locator,
            final_score=best.score,
            attempts_used=attempts_used,
            message=f"Vision board created successfully after {attempts_used} attempt(s)!",
        ))
        logger.info("[%s] Saved vision board (score %d/%d) at %s", request.request_id, best.score, MAX_SCORE, locator)

        return RunResult(
            accepted=True,
            best_attempt=best.attempt,
            image_payload=best.image_payload,
            attempts=run.attempts,
            locator=locator,
            final_state=run.state.value,
        )


def build_orchestrator(
    sink: Optional[ArtifactSink] = None,
    max_attempts: int = config.MAX_ATTEMPTS,
    accept_threshold: int = config.ACCEPT_THRESHOLD,
) -> RetryOrchestrator:
    """Build an orchestrator wired to the configured providers.

    Capabilities without credentials or hardware are left unconfigured and
    the loop degrades the way each component documents.
    """
    # torch and diffusers are only imported when a real orchestrator is built
    from .diffusion import build_image_generator

    return RetryOrchestrator(
        composer=PromptComposer(build_text_generator()),
        synthesizer=ImageSynthesizer(build_image_generator()),
        evaluator=QualityEvaluator(build_image_evaluator()),
        sink=sink or FileArtifactSink(),
        max_attempts=max_attempts,
        accept_threshold=accept_threshold,
    )
