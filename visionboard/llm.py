"""LLM provider abstraction using LangChain."""

import base64
import logging
from typing import Any, Literal, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

import config

from .errors import CapabilityError

logger = logging.getLogger(__name__)

Provider = Literal["openai", "anthropic"]


def provider_api_key(provider: Provider | None = None) -> str | None:
    """Return the API key configured for a provider, if any."""
    provider = provider or config.LLM_PROVIDER
    if provider == "openai":
        return config.OPENAI_API_KEY
    elif provider == "anthropic":
        return config.ANTHROPIC_API_KEY
    raise ValueError(f"Unknown provider: {provider}. Use 'openai' or 'anthropic'.")


def is_configured(provider: Provider | None = None) -> bool:
    """True if the provider has an API key."""
    return bool(provider_api_key(provider))


def get_chat_model(
    provider: Provider | None = None,
    model: str | None = None,
    **kwargs,
) -> BaseChatModel:
    """Get a chat model instance based on provider.

    Args:
        provider: LLM provider ("openai" or "anthropic"). Uses config default if None.
        model: Model name. Uses provider default if None.
        **kwargs: Additional arguments passed to the model constructor.

    Returns:
        LangChain chat model instance.
    """
    provider = provider or config.LLM_PROVIDER
    kwargs.setdefault("timeout", config.LLM_TIMEOUT_SECONDS)

    if provider == "openai":
        return ChatOpenAI(
            model=model or config.OPENAI_MODEL,
            api_key=config.OPENAI_API_KEY,
            **kwargs,
        )
    elif provider == "anthropic":
        return ChatAnthropic(
            model=model or config.ANTHROPIC_MODEL,
            api_key=config.ANTHROPIC_API_KEY,
            **kwargs,
        )
    else:
        raise ValueError(f"Unknown provider: {provider}. Use 'openai' or 'anthropic'.")


def get_vision_model(
    provider: Provider | None = None,
    **kwargs,
) -> BaseChatModel:
    """Get a vision-capable chat model.

    Both default models accept image input.
    """
    return get_chat_model(provider=provider, max_tokens=1000, **kwargs)


def extract_text(content: str | list[Any]) -> str:
    """Extract plain text from an ``AIMessage.content`` field.

    Some providers return a list of content blocks instead of a string.
    """
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts = [
            block["text"]
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ]
        if parts:
            return "\n".join(parts)

    return str(content)


class ChatTextGenerator:
    """Text generation through a LangChain chat model."""

    def __init__(
        self,
        provider: Provider | None = None,
        model: BaseChatModel | None = None,
    ):
        """Initialize the generator.

        Args:
            provider: LLM provider to use. Uses config default if None.
            model: Pre-built chat model, mostly for tests.
        """
        self.provider = provider or config.LLM_PROVIDER
        self._model = model

    @property
    def model(self) -> BaseChatModel:
        """Lazy-load the model."""
        if self._model is None:
            self._model = get_chat_model(
                provider=self.provider,
                max_tokens=config.PROMPT_MAX_TOKENS,
                temperature=config.PROMPT_TEMPERATURE,
            )
        return self._model

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]
        try:
            result = self.model.invoke(messages)
        except Exception as e:
            raise CapabilityError(self.provider, f"text generation failed: {e}") from e
        return extract_text(result.content)


class VisionChatEvaluator:
    """Image evaluation through a vision-capable LangChain chat model."""

    def __init__(
        self,
        provider: Provider | None = None,
        model: BaseChatModel | None = None,
    ):
        self.provider = provider or config.LLM_PROVIDER
        self._model = model

    @property
    def model(self) -> BaseChatModel:
        """Lazy-load the model."""
        if self._model is None:
            self._model = get_vision_model(provider=self.provider)
        return self._model

    def evaluate(self, image_bytes: bytes, rubric_prompt: str) -> str:
        image_b64 = base64.b64encode(image_bytes).decode("utf-8")

        user_content = [
            {"type": "text", "text": rubric_prompt},
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{image_b64}"},
            },
        ]

        try:
            result = self.model.invoke([HumanMessage(content=user_content)])
        except Exception as e:
            raise CapabilityError(self.provider, f"image evaluation failed: {e}") from e
        return extract_text(result.content)


def build_text_generator(provider: Provider | None = None) -> Optional[ChatTextGenerator]:
    """Return a text generator, or None when the provider has no API key."""
    if not is_configured(provider):
        logger.info("No API key for %s; prompts will use local templates", provider or config.LLM_PROVIDER)
        return None
    return ChatTextGenerator(provider=provider)


def build_image_evaluator(provider: Provider | None = None) -> Optional[VisionChatEvaluator]:
    """Return an image evaluator, or None when the provider has no API key."""
    if not is_configured(provider):
        logger.info("No API key for %s; evaluation will use the neutral fallback", provider or config.LLM_PROVIDER)
        return None
    return VisionChatEvaluator(provider=provider)
