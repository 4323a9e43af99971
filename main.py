#!/usr/bin/env python3
"""Entry point for the vision board generation loop.

Usage:
    # Generate a board, streaming events as JSON lines
    python main.py generate "Summer of Strength" --goal "Run a 10k" --goal "Read 12 books"

    # Run with options
    python main.py generate "Focus" -g "Ship the app" --task "Write tests" --aesthetic sketch --layout vertical

    # Serve the HTTP API
    python main.py serve --port 8000

    # Launch the Gradio UI
    python main.py ui

    # Inspect configuration and stored boards
    python main.py capabilities
    python main.py boards --profile alice
"""

import argparse
import json
import sys

import config


def run_ui(share: bool = False, port: int = 7860):
    """Launch the Gradio UI."""
    from ui.app import main as launch_ui
    launch_ui(share=share, port=port)


def run_serve(host: str, port: int):
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from visionboard.api import create_app

    uvicorn.run(create_app(), host=host, port=port)


def run_generate(args: argparse.Namespace) -> int:
    """Run the generation loop from the CLI, printing one JSON event per line."""
    from pydantic import ValidationError

    from visionboard.pipeline import build_orchestrator
    from visionboard.schemas import GenerationRequest
    from visionboard.streaming import encode_json_line, stream_run

    payload = {
        "title": args.title,
        "goals": args.goal,
        "tasks": args.task,
        "type": args.type,
        "style": args.layout,
        "aesthetic": args.aesthetic,
        "profileId": args.profile,
    }
    try:
        request = GenerationRequest.model_validate(payload)
    except ValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2

    orchestrator = build_orchestrator(
        max_attempts=args.max_attempts,
        accept_threshold=args.threshold,
    )

    succeeded = False
    for event in stream_run(orchestrator, request):
        sys.stdout.write(encode_json_line(event))
        sys.stdout.flush()
        succeeded = event.type == "success"
    return 0 if succeeded else 1


def run_capabilities() -> int:
    from visionboard.pipeline import build_orchestrator

    report = build_orchestrator().capabilities()
    print(json.dumps(report.model_dump(by_alias=True), indent=2))
    return 0


def run_boards(args: argparse.Namespace) -> int:
    from visionboard.storage import FileArtifactSink

    for board in FileArtifactSink().list_boards(args.profile):
        print(f"{board.id}  {board.created_at:%Y-%m-%d %H:%M}  {board.final_score}/10  {board.title}")
        print(f"    {board.image_url}")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Vision Board Generation Loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help=f"Logging level (default: {config.LOG_LEVEL})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # UI command
    ui_parser = subparsers.add_parser("ui", help="Launch the Gradio web interface")
    ui_parser.add_argument(
        "--share",
        action="store_true",
        help="Create a public URL for remote access",
    )
    ui_parser.add_argument(
        "--port", "-p",
        type=int,
        default=7860,
        help="Port to run the server on (default: 7860)",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)",
    )

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a vision board from the CLI")
    gen_parser.add_argument("title", type=str, help="Board title / central theme")
    gen_parser.add_argument(
        "--goal", "-g",
        action="append",
        required=True,
        help="A goal to visualize (repeatable)",
    )
    gen_parser.add_argument(
        "--task",
        action="append",
        default=[],
        help="A task for today's focus (repeatable)",
    )
    gen_parser.add_argument(
        "--type",
        choices=["daily", "goal", "challenge", "custom"],
        default="custom",
        help="Board type (default: custom)",
    )
    gen_parser.add_argument(
        "--layout", "-l",
        choices=["horizontal", "vertical", "square"],
        default="horizontal",
        help="Layout style (default: horizontal)",
    )
    gen_parser.add_argument(
        "--aesthetic", "-a",
        choices=["sketch", "photorealistic", "collage", "modern", "vintage"],
        default="modern",
        help="Visual aesthetic (default: modern)",
    )
    gen_parser.add_argument("--profile", default=None, help="Owner profile id")
    gen_parser.add_argument(
        "--threshold", "-t",
        type=int,
        default=config.ACCEPT_THRESHOLD,
        help=f"Score that stops the loop early (default: {config.ACCEPT_THRESHOLD})",
    )
    gen_parser.add_argument(
        "--max-attempts", "-m",
        type=int,
        default=config.MAX_ATTEMPTS,
        help=f"Maximum attempts (default: {config.MAX_ATTEMPTS})",
    )

    # Inspection commands
    subparsers.add_parser("capabilities", help="Show configured capabilities as JSON")
    boards_parser = subparsers.add_parser("boards", help="List stored vision boards")
    boards_parser.add_argument("--profile", default=None, help="Owner profile id")

    args = parser.parse_args()
    config.configure_logging(args.log_level)

    if args.command == "ui":
        run_ui(share=args.share, port=args.port)
    elif args.command == "serve":
        run_serve(host=args.host, port=args.port)
    elif args.command == "generate":
        sys.exit(run_generate(args))
    elif args.command == "capabilities":
        sys.exit(run_capabilities())
    elif args.command == "boards":
        sys.exit(run_boards(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
