"""Vision-model quality evaluation of generated vision boards."""

import logging
import re
from typing import Optional, Sequence

from .capabilities import ImageEvaluator
from .schemas import EvaluationResult

logger = logging.getLogger(__name__)


DEFAULT_SCORE = 5
DEFAULT_FEEDBACK = "unable to parse evaluation"

FALLBACK_EVALUATION = EvaluationResult(
    score=6,
    feedback="Automatic evaluation unavailable. Image generated successfully.",
    improvements="",
)

EVALUATION_PROMPT = """You are a vision board quality evaluator. Analyze this image and provide a detailed evaluation.

ORIGINAL PROMPT:
{prompt}

INTENDED GOALS:
{goals}

Evaluate the generated vision board image on:
1. Goal Representation (Are the goals visually represented?)
2. Aesthetic Quality (Is it visually appealing and professional?)
3. Motivation Factor (Does it inspire and motivate?)
4. Clarity (Is the message clear and readable?)
5. Composition (Is the layout balanced and well-organized?)

Provide your response in this EXACT format:
SCORE: [1-10]
FEEDBACK: [2-3 sentences explaining the score]
IMPROVEMENTS: [Specific suggestions for improvement, or "None needed" if score is 8+]"""

_SCORE_RE = re.compile(r"SCORE:[^\d\n]*(\d+)", re.IGNORECASE)
_FEEDBACK_RE = re.compile(r"FEEDBACK:\s*(.*?)(?=\bIMPROVEMENTS:|\bSCORE:|\Z)", re.IGNORECASE | re.DOTALL)
_IMPROVEMENTS_RE = re.compile(r"IMPROVEMENTS:\s*(.*)", re.IGNORECASE | re.DOTALL)


def parse_evaluation(text: str) -> EvaluationResult:
    """Parse a ``SCORE:/FEEDBACK:/IMPROVEMENTS:`` reply.

    Missing or malformed sections fall back to defaults; this never raises.
    """
    text = text or ""

    score = DEFAULT_SCORE
    score_match = _SCORE_RE.search(text)
    if score_match:
        score = min(10, max(0, int(score_match.group(1))))

    feedback = DEFAULT_FEEDBACK
    feedback_match = _FEEDBACK_RE.search(text)
    if feedback_match and feedback_match.group(1).strip():
        feedback = feedback_match.group(1).strip()

    improvements = ""
    improvements_match = _IMPROVEMENTS_RE.search(text)
    if improvements_match:
        improvements = improvements_match.group(1).strip()

    return EvaluationResult(score=score, feedback=feedback, improvements=improvements)


class QualityEvaluator:
    """Scores generated images with a vision model."""

    def __init__(self, image_evaluator: Optional[ImageEvaluator] = None):
        """Initialize the evaluator.

        Args:
            image_evaluator: Vision backend. When None, every image gets the
                neutral fallback evaluation.
        """
        self.image_evaluator = image_evaluator

    def build_rubric(self, prompt: str, goals: Sequence[str]) -> str:
        return EVALUATION_PROMPT.format(prompt=prompt, goals=", ".join(goals))

    def evaluate(
        self,
        image_payload: bytes,
        prompt: str,
        goals: Sequence[str],
    ) -> EvaluationResult:
        """Evaluate an image against its prompt and goals.

        Returns:
            The parsed evaluation, or ``FALLBACK_EVALUATION`` when the
            evaluation call itself fails.
        """
        if self.image_evaluator is None:
            return FALLBACK_EVALUATION.model_copy()

        try:
            response = self.image_evaluator.evaluate(image_payload, self.build_rubric(prompt, goals))
        except Exception as e:
            logger.warning("Image evaluation failed, using neutral score: %s", e)
            return FALLBACK_EVALUATION.model_copy()

        result = parse_evaluation(response)
        logger.debug("Evaluation score %d/10", result.score)
        return result
