"""chaptrans CLI - translate novel chapters with a running glossary.

Usage:
    chaptrans translate [--config config.json] [--start N] [--unattended]
    chaptrans status [--config config.json]
    chaptrans serve [--host 127.0.0.1] [--port 5500]

Running without a command is the same as `chaptrans translate`.
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional

from chaptrans.ai.service import create_backend
from chaptrans.config import CONFIG_FILE, TranslationSettings, load_config
from chaptrans.exceptions import ChaptransError, ConfigError
from chaptrans.logger import enable_file_logging, get_logger, set_log_mode
from chaptrans.translation.exceptions import MissingSeedError
from chaptrans.translation.manager import ResumeDriver
from chaptrans.translation.progress import ChapterProgress, ProgressReport, RunResult

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CHAPTER_FAILED = 1
EXIT_CONFIG_ERROR = 2

COMMANDS = ("translate", "status", "serve")

InputFunc = Callable[[str], str]

_PHASE_MESSAGES = {
    "analyzing": "  > Pass 1: analyzing text and extracting new terms...",
    "glossary_saved": "    - Glossary saved ({terms} terms)",
    "translating": "  > Pass 2: translating...",
    "completed": "    - Chapter done",
}


def _load(args: argparse.Namespace):
    config = load_config(Path(args.config))
    set_log_mode(config.get('log_mode', 'info'))
    enable_file_logging(config.get('log_mode', 'info') != 'off')
    settings = TranslationSettings.from_config(config)
    return config, settings


def _describe(report: ProgressReport, index: int) -> str:
    if index >= report.total:
        return "all chapters complete"
    return f"chapter {index + 1} ({report.chapters[index].path.name})"


def print_report(report: ProgressReport):
    print(f"Found {report.total} chapter file(s), {report.completed_count} complete.")
    for status in report.chapters:
        marks = ("output" if status.has_output else "-", "glossary" if status.has_glossary else "-")
        print(f"  {status.index + 1:>4}. {status.path.name:<40} {marks[0]:<7} {marks[1]}")
    if report.holes:
        print(f"Warning: complete chapters after the first incomplete one: "
              f"{', '.join(str(i + 1) for i in report.holes)}")
    print(f"Suggested start: {_describe(report, report.suggested_index)}")


def choose_start_index(report: ProgressReport, input_func: InputFunc) -> Optional[int]:
    """
    Ask the operator for a 1-based start chapter.

    Enter accepts the suggestion; invalid input falls back to it.
    Returns None when there is nothing to do.
    """
    suggested = report.suggested_index
    print(f"Suggested start: [{_describe(report, suggested)}]")
    answer = input_func(f"Chapter number to start from (1-{report.total}) [Enter = suggested]: ").strip()

    if answer:
        try:
            number = int(answer)
        except ValueError:
            number = 0
        if 1 <= number <= report.total:
            return number - 1
        print(f"Invalid or out-of-range input, using the suggestion: {_describe(report, suggested)}")

    if suggested >= report.total:
        print("All chapters are already complete.")
        return None
    return suggested


def confirm_empty_seed(error: MissingSeedError, input_func: InputFunc) -> bool:
    print(f"\n[Warning] {error}")
    print("Without it the model does not know the story so far or the established terms,")
    print("so the translation may be inconsistent.")
    answer = input_func("Start with an empty glossary anyway? (y/N): ").strip()
    return answer.lower() == 'y'


def _print_progress(progress: ChapterProgress):
    if progress.phase == "analyzing":
        print(f"\nProcessing {progress.chapter_index + 1}/{progress.total_chapters}: {progress.file_name}")
    print(_PHASE_MESSAGES.get(progress.phase, progress.phase).format(terms=progress.term_count))


def cmd_translate(args: argparse.Namespace, input_func: InputFunc = input) -> int:
    """Run (or resume) the chapter pipeline."""
    config, settings = _load(args)
    unattended = settings.unattended_mode or args.unattended

    # Fails with ConfigError before any chapter is touched
    backend = create_backend(config)

    input_folder = settings.input_folder
    if not input_folder.exists():
        input_folder.mkdir(parents=True, exist_ok=True)
        print(f"Input folder did not exist and was created: {input_folder}")
        print("Put the chapter files in it and run again.")
        return EXIT_OK

    driver = ResumeDriver(settings, backend)
    chapters = driver.list_chapters()
    if not chapters:
        print(f"Input folder {input_folder} is empty.")
        return EXIT_OK

    report = driver.scan(chapters)
    print(f"Found {report.total} chapter file(s).")

    if args.start is not None:
        if not 1 <= args.start <= report.total:
            print(f"--start must be between 1 and {report.total}", file=sys.stderr)
            return EXIT_CONFIG_ERROR
        start_index = args.start - 1
    elif unattended:
        if report.all_complete:
            print("All chapters are already complete.")
            return EXIT_OK
        start_index = report.suggested_index
    else:
        start_index = choose_start_index(report, input_func)
        if start_index is None:
            return EXIT_OK

    print(f"-> Starting from chapter {start_index + 1} ({chapters[start_index].name})")

    def continue_check(result: RunResult) -> bool:
        if unattended:
            return True
        answer = input_func("\nChapter done. Press Enter for the next chapter, 'q' to quit: ").strip()
        if answer.lower() == 'q':
            print("Stopped by user.")
            return False
        return True

    allow_empty_seed = args.allow_empty_glossary
    try:
        result = driver.run(start_index, allow_empty_seed=allow_empty_seed, chapters=chapters,
                            continue_check=continue_check, progress_callback=_print_progress)
    except MissingSeedError as e:
        if unattended or not confirm_empty_seed(e, input_func):
            print("Cancelled. Pass --allow-empty-glossary to start without the previous glossary.")
            return EXIT_OK
        print("-> Continuing with an empty glossary...")
        result = driver.run(start_index, allow_empty_seed=True, chapters=chapters,
                            continue_check=continue_check, progress_callback=_print_progress)

    if result.error is not None:
        print(f"\n[Error] Processing {result.failed_chapter} failed: {result.error}", file=sys.stderr)
        print("Progress has been kept. Fix the problem and run again to resume.", file=sys.stderr)
        return EXIT_CHAPTER_FAILED

    print(f"\nQueue finished: {len(result.completed)} chapter(s) translated. Tokens: {result.token_usage}")
    return EXIT_OK


def cmd_status(args: argparse.Namespace) -> int:
    """Print which chapters are complete and where a run would start."""
    _, settings = _load(args)
    driver = ResumeDriver(settings)
    chapters = driver.list_chapters()
    if not chapters:
        print(f"No chapter files in {settings.input_folder}.")
        return EXIT_OK
    print_report(driver.scan(chapters))
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the read-only progress web interface."""
    from chaptrans.web import create_app

    app = create_app(Path(args.config))
    app.run(host=args.host, port=args.port, debug=False)
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c", default=str(CONFIG_FILE), help="Path to the JSON config file"
    )

    parser = argparse.ArgumentParser(
        description="chaptrans - translate novel chapters with a running glossary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    translate_parser = subparsers.add_parser(
        "translate", help="Translate chapters, resuming where the last run stopped", parents=[common]
    )
    translate_parser.add_argument(
        "--start", "-s", type=int, default=None, help="1-based chapter number to start from"
    )
    translate_parser.add_argument(
        "--allow-empty-glossary", action="store_true",
        help="Start without the previous chapter's glossary if it is missing",
    )
    translate_parser.add_argument(
        "--unattended", "-u", action="store_true", help="Do not prompt between chapters"
    )
    translate_parser.set_defaults(func=cmd_translate)

    status_parser = subparsers.add_parser("status", help="Show chapter progress", parents=[common])
    status_parser.set_defaults(func=cmd_status)

    serve_parser = subparsers.add_parser("serve", help="Run the progress web interface", parents=[common])
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=5500, help="Port")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    argv = list(argv if argv is not None else sys.argv[1:])

    # Default to translate unless the first argument names a command
    if not argv or argv[0] not in (*COMMANDS, "-h", "--help"):
        argv = ["translate", *argv]
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ChaptransError as e:
        # e.g. a damaged glossary snapshot for the seed chapter
        logger.error(f"Run aborted: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CHAPTER_FAILED
    except KeyboardInterrupt:
        print("\nInterrupted. Progress up to the last finished step has been kept.", file=sys.stderr)
        return EXIT_CHAPTER_FAILED


if __name__ == "__main__":
    sys.exit(main())
