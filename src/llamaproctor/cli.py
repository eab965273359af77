"""Command-line interface for the llamaproctor monitor.

Provides the main entry point for running the monitor loop, and
commands for exercising the capture, analyzer and store on their own.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="llamaproctor",
        description="Vision-based classroom focus monitor",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/llamaproctor.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the monitor loop")
    run_parser.add_argument(
        "--task", type=str, default=None,
        help="Task description to analyze against (default: poll the classroom assignment)",
    )
    run_parser.add_argument("--student-id", type=str, default=None, help="Student identifier")
    run_parser.add_argument("--classroom", type=str, default=None, help="Classroom identifier")
    run_parser.add_argument(
        "--max-cycles", type=int, default=None,
        help="Stop after this many analyzed captures",
    )
    run_parser.add_argument(
        "--dry-run", action="store_true",
        help="Keep records in memory instead of MongoDB",
    )

    subparsers.add_parser("capture-test", help="Capture the screen once (saves a frame)")

    analyze_parser = subparsers.add_parser("analyze", help="Capture and analyze the screen once")
    analyze_parser.add_argument("--task", type=str, required=True, help="Task description")

    status_parser = subparsers.add_parser("status", help="Show the stored record of a student")
    status_parser.add_argument("--student-id", type=str, default=None, help="Student identifier")

    return parser.parse_args(argv)


def _build_capture(settings):
    from llamaproctor.capture.screen import ScreenCapture

    return ScreenCapture(monitor_index=settings.capture.monitor_index)


def _build_analyzer(settings):
    """Build the analyzer for the configured provider."""
    cfg = settings.analyzer
    api_key = settings.analyzer_api_key()
    if cfg.provider == "anthropic":
        from llamaproctor.analyzer.anthropic import AnthropicAnalyzer

        return AnthropicAnalyzer(
            api_key=api_key,
            model=cfg.model,
            system_prompt=cfg.system_prompt_override,
            max_tokens=cfg.max_tokens,
            max_dimension=settings.capture.max_dimension,
        )

    from llamaproctor.analyzer.openai import OpenAIAnalyzer

    return OpenAIAnalyzer(
        api_key=api_key,
        model=cfg.model,
        base_url=cfg.base_url,
        system_prompt=cfg.system_prompt_override,
        max_tokens=cfg.max_tokens,
        max_dimension=settings.capture.max_dimension,
    )


def _build_store(settings, dry_run: bool = False):
    """Build the student store; the in-memory one for dry runs."""
    from llamaproctor.storage.memory import InMemoryStudentStore

    cfg = settings.storage
    if dry_run or cfg.backend == "memory":
        return InMemoryStudentStore()

    from llamaproctor.storage.mongo import MongoStudentStore

    uri = settings.mongodb_uri.get_secret_value()
    if not uri:
        raise SystemExit("MONGODB_URI is not set (use --dry-run to keep records in memory)")
    return MongoStudentStore(
        uri=uri,
        database=cfg.database,
        students_collection=cfg.students_collection,
        assignments_collection=cfg.assignments_collection,
        timeout_ms=cfg.timeout_ms,
    )


async def _run_monitor(settings, args) -> None:
    """Initialize all components and run the monitor loop."""
    from llamaproctor.monitor.assignment import AssignmentPoller
    from llamaproctor.monitor.loop import MonitorLoop

    mon = settings.monitor
    student_id = args.student_id or mon.student_id
    classroom = args.classroom or mon.classroom

    store = _build_store(settings, dry_run=args.dry_run)
    async with store:
        if args.dry_run and args.task is None:
            logger.warning("Dry run without --task: no assignment will ever be found")
        assignments = AssignmentPoller(
            store=store,
            classroom=classroom,
            interval=mon.assignment_poll_interval,
            fixed_task=args.task,
        )
        loop = MonitorLoop(
            capture=_build_capture(settings),
            analyzer=_build_analyzer(settings),
            store=store,
            assignments=assignments,
            student_id=student_id,
            student_name=mon.student_name,
            classroom=classroom,
            capture_interval=settings.capture.capture_interval,
            max_consecutive_errors=mon.max_consecutive_errors,
            max_retries=settings.storage.max_retries,
            retry_backoff=settings.storage.retry_backoff,
            include_screenshot=settings.storage.include_screenshot,
            queue_size=mon.queue_size,
        )
        summary = await loop.run(max_cycles=args.max_cycles)

    print(f"\nStudent:    {summary.student_id}")
    print(f"Cycles:     {summary.cycles} ({summary.persisted} stored, {summary.failures} failures)")
    print(f"Skipped:    {summary.dropped_captures} captures while analysis was busy")
    if summary.final_focus_score is not None:
        label = summary.final_suggestion.value if summary.final_suggestion else "-"
        print(f"Focus:      {summary.final_focus_score}/10 ({label})")
    if summary.aborted:
        print("Monitor aborted after repeated errors.")


async def _capture_test(settings) -> None:
    """Capture a single frame and save to file."""
    import cv2

    capture = _build_capture(settings)
    async with capture:
        frame = await capture.capture_frame()
        outfile = "capture_test.png"
        cv2.imwrite(outfile, frame.image)
        print(f"Saved frame to {outfile} ({frame.image.shape[1]}x{frame.image.shape[0]})")


async def _analyze_once(settings, args) -> None:
    """Capture the screen and print the model's analysis."""
    from llamaproctor.tracker.focus import FocusTracker, derive_suggestion

    capture = _build_capture(settings)
    analyzer = _build_analyzer(settings)
    async with capture:
        frame = await capture.capture_frame()

    print("Analyzing via vision model...")
    observation = await analyzer.analyze(frame, args.task)
    update = FocusTracker().record_observation(
        "preview", observation.raw_score, observation.description, observation.short_description
    )

    print("\n" + "=" * 60)
    print("STUDENT ACTIVITY ANALYSIS")
    print("=" * 60)
    print(f"Score:       {observation.raw_score}/5")
    print(f"Activity:    {observation.short_description}")
    print(f"Description: {observation.description}")
    print(f"Suggestion:  {observation.advice or '-'}")
    print(f"Focus from a fresh start: {update.focus_score}/10 "
          f"({derive_suggestion(update.focus_score).value})")
    print("=" * 60)


async def _show_status(settings, args) -> None:
    """Print the stored record for a student."""
    student_id = args.student_id or settings.monitor.student_id
    async with _build_store(settings) as store:
        record = await store.get_student(student_id)

    if record is None:
        print(f"No record stored for student {student_id}")
        return
    print(f"Student:     {record.id} {record.name}".rstrip())
    print(f"Classroom:   {record.classroom}")
    print(f"Active:      {record.active}")
    print(f"Focus:       {record.focus_score}/10 ({record.suggestion})")
    print(f"Activity:    {record.short_description}")
    print(f"Updated:     {record.last_updated.isoformat(timespec='seconds')}")
    if record.history:
        print("\nRecent history:")
        for entry in record.history[:10]:
            print(f"  - {entry[:100]}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the llamaproctor CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from llamaproctor.config.settings import load_settings
    from llamaproctor.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        if args.command == "run":
            logger.info("Starting monitor loop")
            asyncio.run(_run_monitor(settings, args))

        elif args.command == "capture-test":
            logger.info("Running capture test")
            asyncio.run(_capture_test(settings))

        elif args.command == "analyze":
            logger.info("Running one-shot analysis")
            asyncio.run(_analyze_once(settings, args))

        elif args.command == "status":
            asyncio.run(_show_status(settings, args))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
