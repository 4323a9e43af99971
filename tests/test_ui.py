"""Tests for the Gradio front-end helpers."""

from ui import app
from visionboard.schemas import EvaluationEvent
from visionboard.storage import FileArtifactSink

from .conftest import MemorySink, make_orchestrator


def test_format_evaluation_html() -> None:
    html = app.format_evaluation_html(
        EvaluationEvent(attempt_number=2, score=8, feedback="Bold and clear", improvements="Add color", passed_threshold=True)
    )
    assert "Attempt 2" in html
    assert "8/10" in html
    assert "score-high" in html
    assert "Add color" in html


def test_run_generation_requires_goals() -> None:
    updates = list(app.run_generation("Focus", "  \n", "", "custom", "horizontal", "modern"))
    assert updates == [(None, "", "⚠️ Please enter a title and at least one goal")]


def test_run_generation_streams_status(monkeypatch, file_sink) -> None:
    monkeypatch.setattr(app, "_orchestrator", make_orchestrator(scores=[9], sink=file_sink))

    updates = list(app.run_generation("Focus", "Ship the app\nRun", "", "goal", "square", "vintage"))

    image, attempts_html, status = updates[-1]
    assert status.startswith("✓ Vision board created successfully")
    assert "Attempt 1" in attempts_html
    assert image is not None


def test_format_evaluation_html_escapes_model_text() -> None:
    html = app.format_evaluation_html(
        EvaluationEvent(
            attempt_number=1,
            score=0,
            feedback="Image generation failed: <script>alert(1)</script>",
            improvements="Use <b>bold</b> & bright colors",
            passed_threshold=False,
        )
    )
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "Use &lt;b&gt;bold&lt;/b&gt; &amp; bright colors" in html


def test_run_generation_reads_board_from_orchestrator_sink(monkeypatch, tmp_path) -> None:
    sink = FileArtifactSink(root=tmp_path / "elsewhere")
    monkeypatch.setattr(app, "_orchestrator", make_orchestrator(scores=[9], sink=sink))

    updates = list(app.run_generation("Focus", "Ship the app", "", "goal", "square", "vintage"))

    image, _, status = updates[-1]
    assert status.startswith("✓")
    assert image is not None
    assert image.size == (8, 8)


def test_run_generation_with_non_file_sink(monkeypatch) -> None:
    monkeypatch.setattr(app, "_orchestrator", make_orchestrator(scores=[9], sink=MemorySink()))

    updates = list(app.run_generation("Focus", "Ship the app", "", "goal", "square", "vintage"))

    image, _, status = updates[-1]
    assert status.startswith("✓")
    assert image is None
