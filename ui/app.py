"""Gradio interface for the vision board generation loop."""

import html
from typing import Generator

import gradio as gr
from PIL import Image
from pydantic import ValidationError

import config
from visionboard.pipeline import RetryOrchestrator, build_orchestrator
from visionboard.schemas import (
    Aesthetic,
    AttemptEvent,
    BoardType,
    ErrorEvent,
    EvaluationEvent,
    GenerationRequest,
    LayoutStyle,
    ProgressEvent,
    SuccessEvent,
)
from visionboard.storage import FileArtifactSink
from visionboard.streaming import stream_run


# Custom CSS for a clean light theme
CUSTOM_CSS = """
:root {
    --primary: #6366f1;
    --surface-2: #f8fafc;
    --surface-3: #e2e8f0;
    --text: #1e293b;
    --text-muted: #64748b;
}

.main-header {
    text-align: center;
    padding: 2rem 0;
    border-bottom: 1px solid var(--surface-3);
    margin-bottom: 1.5rem;
}

.attempt-card {
    background: var(--surface-2) !important;
    border: 1px solid var(--surface-3) !important;
    border-radius: 12px !important;
    padding: 1rem !important;
    margin-bottom: 1rem !important;
}

.score-badge {
    padding: 0.25rem 0.75rem;
    border-radius: 9999px;
    font-size: 0.875rem;
    font-weight: 500;
}

.score-high { background: #d1fae5; color: #047857; }
.score-mid { background: #fef3c7; color: #b45309; }
.score-low { background: #fee2e2; color: #b91c1c; }
"""

_orchestrator: RetryOrchestrator | None = None


def get_orchestrator() -> RetryOrchestrator:
    """Build the orchestrator once; the SD3 pipeline is cached on it."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


def format_evaluation_html(event: EvaluationEvent) -> str:
    """Format an evaluation event as HTML for display."""
    score = event.score
    score_class = "score-high" if event.passed_threshold else "score-mid" if score >= 5 else "score-low"

    improvements = ""
    if event.improvements:
        improvements = f"""
        <details>
            <summary style="cursor: pointer; font-size: 0.85rem; color: #475569;">Improvements</summary>
            <p style="font-size: 0.8rem; color: #64748b;">{html.escape(event.improvements)}</p>
        </details>"""

    return f"""
    <div class="attempt-card">
        <div style="display: flex; justify-content: space-between; align-items: center; margin-bottom: 0.75rem;">
            <h3 style="margin: 0; font-size: 1rem; color: #1e293b;">Attempt {event.attempt_number}</h3>
            <span class="score-badge {score_class}">{score}/{event.max_score}</span>
        </div>
        <p style="font-size: 0.85rem; color: #475569;">{html.escape(event.feedback)}</p>
        {improvements}
    </div>
    """


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def run_generation(
    title: str,
    goals_text: str,
    tasks_text: str,
    board_type: str,
    layout_style: str,
    aesthetic: str,
) -> Generator[tuple, None, None]:
    """Run the generation loop with streaming updates.

    Yields:
        Tuple of (board_image, attempts_html, status_message)
    """
    try:
        request = GenerationRequest(
            title=title.strip(),
            goals=_split_lines(goals_text),
            tasks=_split_lines(tasks_text),
            board_type=board_type,
            layout_style=layout_style,
            aesthetic=aesthetic,
        )
    except ValidationError:
        yield None, "", "⚠️ Please enter a title and at least one goal"
        return

    attempts_html = ""
    status = "⏳ Starting..."
    image = None

    for event in stream_run(get_orchestrator(), request):
        if isinstance(event, ProgressEvent):
            status = f"⏳ {event.message}"
        elif isinstance(event, AttemptEvent):
            status = f"⏳ Attempt {event.attempt_number}/{event.max_attempts}: {event.message}"
        elif isinstance(event, EvaluationEvent):
            attempts_html += format_evaluation_html(event)
        elif isinstance(event, SuccessEvent):
            storage = get_orchestrator().sink
            if isinstance(storage, FileArtifactSink):
                record = storage.get_board(request.request_id, request.owner_id)
                image = Image.open(storage.image_path(record))
            status = f"✓ {event.message} Final score: {event.final_score}/10"
        elif isinstance(event, ErrorEvent):
            status = f"⚠️ Error: {event.message}"
        yield image, attempts_html, status


def create_ui() -> gr.Blocks:
    """Create the Gradio interface."""

    with gr.Blocks(css=CUSTOM_CSS, title="Vision Board Generator") as app:
        gr.HTML("""
            <div class="main-header">
                <h1>Vision Board Generator</h1>
                <p>Generates a board, scores it, and retries with the feedback</p>
            </div>
        """)

        with gr.Row():
            # Left column: Controls
            with gr.Column(scale=1):
                title_input = gr.Textbox(label="Title", placeholder="Summer of Strength")
                goals_input = gr.Textbox(
                    label="Goals (one per line)",
                    placeholder="Run a 10k\nRead 12 books",
                    lines=4,
                )
                tasks_input = gr.Textbox(label="Today's tasks (optional, one per line)", lines=3)

                with gr.Row():
                    type_input = gr.Dropdown(
                        choices=[t.value for t in BoardType],
                        value=BoardType.CUSTOM.value,
                        label="Type",
                    )
                    layout_input = gr.Dropdown(
                        choices=[s.value for s in LayoutStyle],
                        value=LayoutStyle.HORIZONTAL.value,
                        label="Layout",
                    )
                    aesthetic_input = gr.Dropdown(
                        choices=[a.value for a in Aesthetic],
                        value=Aesthetic.MODERN.value,
                        label="Aesthetic",
                    )

                run_button = gr.Button("Generate Vision Board", variant="primary", size="lg")
                status_output = gr.Textbox(label="Status", interactive=False)
                gr.Markdown(
                    f"Up to {config.MAX_ATTEMPTS} attempts; stops early at "
                    f"{config.ACCEPT_THRESHOLD}/10 or above."
                )

            # Right column: Results
            with gr.Column(scale=2):
                board_output = gr.Image(label="Vision Board", type="pil", height=400)
                attempts_display = gr.HTML(
                    value="<p style='color: #64748b; text-align: center; padding: 2rem;'>Generate a board to see attempt details</p>",
                )

        run_button.click(
            fn=run_generation,
            inputs=[title_input, goals_input, tasks_input, type_input, layout_input, aesthetic_input],
            outputs=[board_output, attempts_display, status_output],
        )

    return app


def main(share: bool = False, port: int = 7860):
    """Launch the Gradio app.

    Args:
        share: If True, creates a public URL for remote access.
        port: Port to run the server on.
    """
    app = create_ui()
    app.launch(
        share=share,
        server_name="0.0.0.0",
        server_port=port,
    )
