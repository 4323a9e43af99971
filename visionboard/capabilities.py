"""Capability protocols consumed by the generation loop.

Each external service the loop depends on is modelled as a small protocol
with one concrete adapter:

    - TextGenerator   -> llm.ChatTextGenerator
    - ImageGenerator  -> diffusion.DiffusersImageGenerator
    - ImageEvaluator  -> llm.VisionChatEvaluator
    - ArtifactSink    -> storage.FileArtifactSink

Tests drive the orchestrator with deterministic stubs of the same shape.
"""

from typing import Optional, Protocol, runtime_checkable

import config

from .schemas import ArtifactContext, CapabilitiesReport


@runtime_checkable
class TextGenerator(Protocol):
    """Generates text from a system and a user prompt."""

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the generated text.

        Raises:
            CapabilityError: If the call fails.
        """
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    """Generates an image from a text prompt."""

    def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> bytes:
        """Return encoded image bytes (PNG).

        Raises:
            CapabilityError: If the call fails.
        """
        ...


@runtime_checkable
class ImageEvaluator(Protocol):
    """Scores an image against a rubric prompt."""

    def evaluate(self, image_bytes: bytes, rubric_prompt: str) -> str:
        """Return the raw evaluation text.

        Raises:
            CapabilityError: If the call fails.
        """
        ...


@runtime_checkable
class ArtifactSink(Protocol):
    """Persists an accepted image and its metadata record."""

    def save(self, image_bytes: bytes, context: ArtifactContext) -> str:
        """Store the artifact and return an addressable locator.

        Raises:
            ArtifactSaveError: If persisting fails.
        """
        ...


def describe_capabilities(
    text_generator: Optional[TextGenerator] = None,
    image_generator: Optional[ImageGenerator] = None,
    image_evaluator: Optional[ImageEvaluator] = None,
    max_attempts: int = config.MAX_ATTEMPTS,
    accept_threshold: int = config.ACCEPT_THRESHOLD,
) -> CapabilitiesReport:
    """Report which capabilities are configured and the acceptance policy."""
    image_ready = image_generator is not None
    is_available = getattr(image_generator, "is_available", None)
    if image_ready and callable(is_available):
        image_ready = bool(is_available())

    return CapabilitiesReport(
        text_generation=text_generator is not None,
        image_generation=image_ready,
        evaluation=image_evaluator is not None,
        max_attempts=max_attempts,
        accept_threshold=accept_threshold,
    )
