"""SD3 image generation via Diffusers."""

import logging
import random
import threading
import time
from io import BytesIO
from typing import Optional

import torch
from diffusers import StableDiffusion3Pipeline
from PIL import Image

import config

from .errors import CapabilityError, CapabilityUnavailableError

logger = logging.getLogger(__name__)


class DiffusersImageGenerator:
    """Generates vision board images using Stable Diffusion 3."""

    provider = "diffusers"

    def __init__(
        self,
        model_id: str = config.SD3_MODEL_ID,
        device: str = config.IMAGE_DEVICE,
        dtype: torch.dtype = torch.float16,
        negative_prompt: str = config.DEFAULT_NEGATIVE_PROMPT,
        time_limit: Optional[float] = config.IMAGE_TIMEOUT_SECONDS,
    ):
        """Initialize the SD3 pipeline.

        Args:
            model_id: HuggingFace model ID for SD3.
            device: Device to run inference on.
            dtype: Torch dtype for model weights.
            negative_prompt: Things to keep out of every board.
            time_limit: Seconds after which a call stops denoising and fails.
        """
        self.device = device
        self.dtype = dtype
        self.model_id = model_id
        self.negative_prompt = negative_prompt
        self.time_limit = time_limit
        self._pipeline: Optional[StableDiffusion3Pipeline] = None
        self._stop = threading.Event()

    def is_available(self) -> bool:
        """True if the configured device can run the pipeline."""
        if self.device.startswith("cuda"):
            return torch.cuda.is_available()
        return True

    @property
    def pipeline(self) -> StableDiffusion3Pipeline:
        """Lazy-load the pipeline on first use."""
        if self._pipeline is None:
            logger.info("Loading %s on %s", self.model_id, self.device)
            self._pipeline = StableDiffusion3Pipeline.from_pretrained(
                self.model_id,
                torch_dtype=self.dtype,
            )
            self._pipeline.to(self.device)
            # Enable memory optimizations
            self._pipeline.enable_attention_slicing()
        return self._pipeline

    def generate(
        self,
        prompt: str,
        aspect_ratio: str = "16:9",
        seed: Optional[int] = None,
        num_inference_steps: int = config.NUM_INFERENCE_STEPS,
        guidance_scale: float = config.GUIDANCE_SCALE,
    ) -> tuple[Image.Image, int]:
        """Generate an image from a prompt.

        Args:
            prompt: The text prompt for image generation.
            aspect_ratio: One of the keys of ``config.ASPECT_RATIO_SIZES``.
            seed: Random seed for reproducibility. Random if None.
            num_inference_steps: Number of denoising steps.
            guidance_scale: Classifier-free guidance scale.

        Returns:
            Tuple of (generated PIL Image, seed used).
        """
        if not self.is_available():
            raise CapabilityUnavailableError(self.provider, f"device {self.device!r} is not available")

        width, height = config.ASPECT_RATIO_SIZES.get(aspect_ratio, config.ASPECT_RATIO_SIZES["1:1"])

        if seed is None:
            seed = random.randint(0, 2**32 - 1)
        generator = torch.Generator(device=self.device).manual_seed(seed)

        self._stop.clear()
        deadline = None if self.time_limit is None else time.monotonic() + self.time_limit
        stopped = False

        def stop_when_due(pipe, step, timestep, callback_kwargs):
            nonlocal stopped
            if self._stop.is_set() or (deadline is not None and time.monotonic() > deadline):
                # The pipeline skips its remaining denoising steps once this is set.
                pipe._interrupt = True
                stopped = True
            return callback_kwargs

        try:
            result = self.pipeline(
                prompt=prompt,
                negative_prompt=self.negative_prompt,
                num_inference_steps=num_inference_steps,
                guidance_scale=guidance_scale,
                width=width,
                height=height,
                generator=generator,
                callback_on_step_end=stop_when_due,
            )
        except Exception as e:
            raise CapabilityError(self.provider, f"image generation failed: {e}") from e
        finally:
            self.clear_cache()

        if stopped:
            raise CapabilityError(self.provider, "image generation was interrupted before it finished")
        if not result.images:
            raise CapabilityError(self.provider, "No image was generated")
        return result.images[0], seed

    def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> bytes:
        """Generate an image and return it PNG-encoded."""
        image, seed = self.generate(prompt, aspect_ratio=aspect_ratio)
        logger.debug("Generated %sx%s image with seed %d", image.width, image.height, seed)

        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def interrupt(self) -> None:
        """Ask an in-flight call to stop at its next denoising step."""
        self._stop.set()

    def clear_cache(self) -> None:
        """Clear CUDA cache to free memory."""
        if torch.cuda.is_available():
            torch.cuda.empty_cache()


def build_image_generator() -> Optional[DiffusersImageGenerator]:
    """Return the SD3 generator, or None when its device is missing."""
    generator = DiffusersImageGenerator()
    if not generator.is_available():
        logger.warning("Image device %r unavailable; image generation is disabled", generator.device)
        return None
    return generator
