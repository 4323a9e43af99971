"""Vision board prompt composition, with a local template fallback."""

import logging
from typing import Optional

from .capabilities import TextGenerator
from .schemas import Aesthetic, GenerationRequest, LayoutStyle

logger = logging.getLogger(__name__)


STYLE_DESCRIPTIONS = {
    Aesthetic.SKETCH: (
        "A detailed blue ballpoint pen sketch style with cross-hatching for shading "
        "and hand-drawn doodle aesthetic"
    ),
    Aesthetic.PHOTOREALISTIC: (
        "Photorealistic high-quality professional photography style with perfect "
        "lighting and composition"
    ),
    Aesthetic.COLLAGE: (
        "A creative collage style with overlapping images, textures, and cut-out elements"
    ),
    Aesthetic.MODERN: (
        "Clean, modern minimalist design with geometric shapes and a contemporary aesthetic"
    ),
    Aesthetic.VINTAGE: (
        "Vintage aesthetic with muted colors, film grain, and retro typography"
    ),
}

LAYOUT_DESCRIPTIONS = {
    LayoutStyle.HORIZONTAL: "wide horizontal panoramic layout (16:9 aspect ratio)",
    LayoutStyle.VERTICAL: "tall vertical portrait layout (9:16 aspect ratio)",
    LayoutStyle.SQUARE: "square balanced layout (1:1 aspect ratio)",
}

REQUIRED_ELEMENTS = (
    "Central focus on the main goal or achievement",
    "Surrounding supportive imagery representing each goal",
    "Motivational text overlays with key phrases",
    "Success symbols (stars, checkmarks, trophy elements)",
    "Progress indicators or pathway imagery",
    "Warm, inspiring color palette",
    "Clear visual hierarchy",
)

MAX_FALLBACK_TASKS = 3


PROMPT_WRITER_SYSTEM_PROMPT = """You are an expert vision board designer and prompt engineer. Your job is to create highly detailed image generation prompts for vision boards.

The user wants to create a {board_type} vision board with the following details:
{details}
{feedback_clause}
Create a detailed image generation prompt that:
1. Visualizes the user achieving their goals
2. Uses the specified aesthetic ({aesthetic})
3. Is laid out in a {layout} format
4. Includes motivational visual elements
5. Has a cohesive color scheme
6. Includes clear, readable text elements for goals

IMPORTANT: The prompt should be specific, detailed, and optimized for AI image generation.
Return ONLY the image generation prompt, nothing else."""


class PromptComposer:
    """Turns a generation request into a single image generation prompt."""

    def __init__(self, text_generator: Optional[TextGenerator] = None):
        """Initialize the composer.

        Args:
            text_generator: Prompt-writing model. When None, every prompt
                comes from the local template.
        """
        self.text_generator = text_generator

    def compose(
        self,
        request: GenerationRequest,
        prior_feedback: Optional[str] = None,
    ) -> str:
        """Build the prompt for the next attempt. Never raises."""
        if self.text_generator is not None:
            try:
                prompt = self.text_generator.generate(
                    self.build_system_prompt(request, prior_feedback),
                    f"Create a vision board prompt for: {request.title}",
                )
            except Exception as e:
                logger.warning("Prompt generation failed, using local template: %s", e)
            else:
                prompt = (prompt or "").strip()
                if prompt:
                    return prompt
                logger.warning("Prompt generation returned no text, using local template")

        return self.compose_local(request, prior_feedback)

    def build_system_prompt(
        self,
        request: GenerationRequest,
        prior_feedback: Optional[str] = None,
    ) -> str:
        """Build the instruction sent to the prompt-writing model."""
        details = [
            f"- Title: {request.title}",
            f"- Goals: {', '.join(request.goals)}",
        ]
        if request.tasks:
            details.append(f"- Today's Tasks: {', '.join(request.tasks)}")
        if request.challenge:
            details.append(f"- Challenge: {request.challenge.name}")
        details.append(f"- Style: {request.layout_style.value} layout")
        details.append(f"- Aesthetic: {request.aesthetic.value}")

        feedback_clause = ""
        if prior_feedback:
            feedback_clause = (
                f"\nPREVIOUS ATTEMPT FEEDBACK:\n{prior_feedback}\n\n"
                "Please improve the prompt based on this feedback.\n"
            )

        return PROMPT_WRITER_SYSTEM_PROMPT.format(
            board_type=request.board_type.value,
            details="\n".join(details),
            feedback_clause=feedback_clause,
            aesthetic=request.aesthetic.value,
            layout=request.layout_style.value,
        )

    def compose_local(
        self,
        request: GenerationRequest,
        prior_feedback: Optional[str] = None,
    ) -> str:
        """Assemble a prompt from the fixed templates, without any model call."""
        goals = "\n".join(f"{i}. {goal}" for i, goal in enumerate(request.goals, start=1))
        elements = "\n".join(f"- {element}" for element in REQUIRED_ELEMENTS)

        sections = [
            f"Create a stunning vision board with {LAYOUT_DESCRIPTIONS[request.layout_style]}.",
            f"Style: {STYLE_DESCRIPTIONS[request.aesthetic]}",
            f'Central Theme: "{request.title}"',
            f"Goals to visualize:\n{goals}",
        ]
        if request.tasks:
            focus = ", ".join(request.tasks[:MAX_FALLBACK_TASKS])
            sections.append(f"Today's focus areas:\n{focus}")
        sections.append(f"Visual elements to include:\n{elements}")
        sections.append(
            "The vision board should feel achievable, inspiring, and personally meaningful. "
            "Include subtle details that represent growth, progress, and success."
        )

        prompt = "\n\n".join(sections)

        if prior_feedback:
            prompt += (
                f"\n\nIMPROVEMENT NOTES FROM PREVIOUS ATTEMPT:\n{prior_feedback}"
                "\n\nPlease address these issues in this version."
            )

        return prompt
