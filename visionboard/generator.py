"""Single-shot image synthesis with a typed result."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

import config

from .capabilities import ImageGenerator
from .schemas import LayoutStyle, SynthesisResult

logger = logging.getLogger(__name__)


ASPECT_RATIOS = {
    LayoutStyle.HORIZONTAL: "16:9",
    LayoutStyle.VERTICAL: "9:16",
    LayoutStyle.SQUARE: "1:1",
}


class ImageSynthesizer:
    """Wraps one image generation call.

    Failures of any kind come back as ``SynthesisResult(ok=False)``. There is
    no retry here; the orchestrator owns the retry policy.

    Calls run one at a time on a single worker thread. A call that overruns
    its timeout is asked to stop (backends exposing ``interrupt()``), and no
    new call starts until it has actually finished.
    """

    def __init__(
        self,
        image_generator: Optional[ImageGenerator] = None,
        timeout: Optional[float] = config.IMAGE_TIMEOUT_SECONDS,
    ):
        """Initialize the synthesizer.

        Args:
            image_generator: Backend that turns a prompt into image bytes.
            timeout: Seconds to wait for one call. None waits forever.
        """
        self.image_generator = image_generator
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="synthesize")
        self._pending: Optional[Future] = None

    @property
    def busy(self) -> bool:
        """True while an earlier, timed-out call is still running."""
        return self._pending is not None and not self._pending.done()

    def synthesize(
        self,
        prompt: str,
        layout_style: LayoutStyle = LayoutStyle.HORIZONTAL,
    ) -> SynthesisResult:
        if self.image_generator is None:
            return SynthesisResult.failure("Image generation is not configured")
        if self.busy:
            # Give an interrupted call the same budget to wind down.
            wait([self._pending], timeout=self.timeout)
        if self.busy:
            logger.warning("Previous image generation is still running; skipping this call")
            return SynthesisResult.failure("Previous image generation is still running")

        aspect_ratio = ASPECT_RATIOS[layout_style]
        future = self._executor.submit(self.image_generator.generate_image, prompt, aspect_ratio)
        self._pending = future
        try:
            image_payload = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning("Image generation timed out after %ss", self.timeout)
            self._interrupt()
            return SynthesisResult.failure(f"Image generation timed out after {self.timeout}s")
        except Exception as e:
            logger.warning("Image generation failed: %s", e)
            return SynthesisResult.failure(str(e) or type(e).__name__)

        if not image_payload:
            return SynthesisResult.failure("No image was generated")
        return SynthesisResult.success(image_payload)

    def _interrupt(self) -> None:
        interrupt = getattr(self.image_generator, "interrupt", None)
        if callable(interrupt):
            interrupt()
