"""Tests for the SD3 adapter's stop handling, with the pipeline faked out."""

from types import SimpleNamespace

import pytest
from PIL import Image

import config

pytest.importorskip("diffusers")

from visionboard.diffusion import DiffusersImageGenerator  # noqa: E402
from visionboard.errors import CapabilityError  # noqa: E402


class FakePipeline:
    """Mimics the diffusers step loop: steps are skipped once ``_interrupt`` is set."""

    def __init__(self, on_step=None):
        self.on_step = on_step
        self.steps_run = 0
        self.kwargs = {}

    def __call__(self, num_inference_steps, callback_on_step_end=None, **kwargs):
        self.kwargs = kwargs
        self._interrupt = False
        for step in range(num_inference_steps):
            if self._interrupt:
                continue
            self.steps_run += 1
            if self.on_step:
                self.on_step(step)
            if callback_on_step_end:
                callback_on_step_end(self, step, 1000 - step, {})
        return SimpleNamespace(images=[Image.new("RGB", (kwargs["width"], kwargs["height"]))])


def _generator(pipeline, time_limit=None) -> DiffusersImageGenerator:
    generator = DiffusersImageGenerator(device="cpu", time_limit=time_limit)
    generator._pipeline = pipeline
    return generator


def test_generates_png_at_aspect_ratio_size() -> None:
    pipeline = FakePipeline()
    payload = _generator(pipeline).generate_image("a board", aspect_ratio="9:16")

    assert payload.startswith(b"\x89PNG")
    assert (pipeline.kwargs["width"], pipeline.kwargs["height"]) == (768, 1344)
    assert pipeline.steps_run == config.NUM_INFERENCE_STEPS


def test_deadline_stops_denoising() -> None:
    pipeline = FakePipeline()

    with pytest.raises(CapabilityError, match="interrupted"):
        _generator(pipeline, time_limit=-1).generate("a board", num_inference_steps=10)

    assert pipeline.steps_run == 1


def test_interrupt_stops_in_flight_call() -> None:
    generator = _generator(None)
    pipeline = FakePipeline(on_step=lambda step: step == 2 and generator.interrupt())
    generator._pipeline = pipeline

    with pytest.raises(CapabilityError, match="interrupted"):
        generator.generate("a board", num_inference_steps=10)

    assert pipeline.steps_run == 3
