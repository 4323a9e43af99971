"""Configuration settings for the vision board generation loop."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).parent
VISIONBOARDS_DIR = Path(os.getenv("VISIONBOARDS_DIR", PROJECT_ROOT / "data" / "visionboards"))

# API Keys (loaded from .env)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")

# LLM Provider: "openai" or "anthropic"
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

# Prompt writer sampling
PROMPT_MAX_TOKENS = 500
PROMPT_TEMPERATURE = 0.7

# Model settings
SD3_MODEL_ID = os.getenv("SD3_MODEL_ID", "stabilityai/stable-diffusion-3-medium-diffusers")
IMAGE_DEVICE = os.getenv("IMAGE_DEVICE", "cuda")
NUM_INFERENCE_STEPS = 28
GUIDANCE_SCALE = 7.0

# Width/height per aspect-ratio hint (multiples of 64 for SD3)
ASPECT_RATIO_SIZES = {
    "16:9": (1344, 768),
    "9:16": (768, 1344),
    "1:1": (1024, 1024),
}

# Loop settings
MAX_ATTEMPTS = int(os.getenv("VISIONBOARD_MAX_ATTEMPTS", "3"))
ACCEPT_THRESHOLD = int(os.getenv("VISIONBOARD_ACCEPT_THRESHOLD", "7"))  # Stop if score >= this (0-10 scale)

# Per-call timeouts, in seconds
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
IMAGE_TIMEOUT_SECONDS = float(os.getenv("IMAGE_TIMEOUT_SECONDS", "300"))

# Default negative prompt
DEFAULT_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, deformed, ugly, bad anatomy, "
    "bad proportions, garbled text, misspelled words, watermark, signature"
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and server entry points."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
