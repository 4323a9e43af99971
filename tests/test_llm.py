"""Tests for the LangChain capability adapters."""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

import config
from visionboard import llm
from visionboard.errors import CapabilityError
from visionboard.llm import ChatTextGenerator, VisionChatEvaluator, extract_text

from .conftest import PNG_BYTES


class RaisingModel:
    def invoke(self, messages):
        raise TimeoutError("request timed out")


def test_text_generator_returns_content() -> None:
    generator = ChatTextGenerator(provider="openai", model=FakeListChatModel(responses=["a prompt"]))
    assert generator.generate("system", "user") == "a prompt"


def test_text_generator_wraps_errors() -> None:
    generator = ChatTextGenerator(provider="anthropic", model=RaisingModel())
    with pytest.raises(CapabilityError, match=r"\[anthropic\] text generation failed"):
        generator.generate("system", "user")


def test_vision_evaluator_returns_text() -> None:
    evaluator = VisionChatEvaluator(provider="openai", model=FakeListChatModel(responses=["SCORE: 7"]))
    assert evaluator.evaluate(PNG_BYTES, "rubric") == "SCORE: 7"


def test_vision_evaluator_wraps_timeouts() -> None:
    evaluator = VisionChatEvaluator(provider="openai", model=RaisingModel())
    with pytest.raises(CapabilityError):
        evaluator.evaluate(PNG_BYTES, "rubric")


def test_extract_text_from_content_blocks() -> None:
    blocks = [{"type": "text", "text": "SCORE: 8"}, {"type": "image"}, {"type": "text", "text": "FEEDBACK: ok"}]
    assert extract_text(blocks) == "SCORE: 8\nFEEDBACK: ok"
    assert extract_text("plain") == "plain"


def test_builders_respect_missing_keys(monkeypatch) -> None:
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    assert llm.build_text_generator("openai") is None
    assert llm.build_image_evaluator("openai") is None

    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-test")
    assert isinstance(llm.build_text_generator("openai"), ChatTextGenerator)
    assert isinstance(llm.build_image_evaluator("openai"), VisionChatEvaluator)


def test_unknown_provider() -> None:
    with pytest.raises(ValueError):
        llm.is_configured("mistral")
