#!/usr/bin/env python3
"""
CLI runner for grab.

Searches every regular file under a directory for a literal string and
prints the matching locations grouped by file.

Usage:
    grab 'search text'              # Search the current directory tree
    grab -d -h 'search text'        # Top-level files only, no hidden files
    grab -c -s 'Search Text'        # Case-sensitive, show skipped files
    grab --root /var/log --json err # Search another root, JSON output
"""

import argparse
import logging
import os
import sys
import threading
from typing import Optional

import structlog

from config import settings


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Looked up per call so a replaced sys.stderr is honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str) -> None:
    """Configure structlog to write to stderr, keeping stdout for results."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        logger_factory=_stderr_logger
    )


# Configure logging before imports
configure_logging(settings.log_level())

logger = structlog.get_logger()

from reporting.formatter import format_report, format_report_json
from scanning.errors import FatalError
from scanning.models import SearchRequest
from services.search_engine import SearchEngine

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser. -h means 'exclude hidden', not help."""
    parser = argparse.ArgumentParser(
        prog=settings.APP_NAME,
        usage="%(prog)s [-d] [-h] [-c] [-s] [options] <search-string>",
        description="Recursively search file contents for a literal string.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog="""
Example:
  grab -d -h -c -s 'search text'
        """
    )

    parser.add_argument(
        "terms",
        nargs="*",
        metavar="search-string",
        help="Literal text to search for"
    )

    flags = parser.add_argument_group("Flags")
    flags.add_argument(
        "-d",
        dest="exclude_subdirs",
        action="store_true",
        help="Do not search subdirectories"
    )
    flags.add_argument(
        "-h",
        dest="exclude_hidden",
        action="store_true",
        help="Do not search hidden files"
    )
    flags.add_argument(
        "-c",
        dest="case_sensitive",
        action="store_true",
        help="Perform case-sensitive search"
    )
    flags.add_argument(
        "-s",
        dest="show_skipped",
        action="store_true",
        help="Show directories where files have been skipped"
    )

    options = parser.add_argument_group("Options")
    options.add_argument(
        "-r", "--root",
        help="Directory to search (default: current directory)"
    )
    options.add_argument(
        "-j", "--max-concurrency",
        type=_positive_int,
        default=settings.DEFAULT_MAX_CONCURRENCY,
        help=f"Maximum files searched at once (default: {settings.DEFAULT_MAX_CONCURRENCY})"
    )
    options.add_argument(
        "--follow-symlinks",
        action="store_true",
        help="Descend into symlinked directories"
    )
    options.add_argument(
        "--timeout",
        type=_positive_float,
        help="Stop the search after this many seconds"
    )
    options.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON"
    )
    options.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging on stderr"
    )
    options.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s version {settings.APP_VERSION}"
    )
    options.add_argument(
        "--help",
        action="help",
        help="Show this help message and exit"
    )

    return parser


def printable(text: str) -> str:
    """
    Make text safe to write to stdout.

    File names that are not valid in the filesystem encoding arrive as
    surrogate escapes; they are shown as \\xNN escapes instead.
    """
    encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
    text = os.fsencode(text).decode(sys.getfilesystemencoding(), "backslashreplace")
    return text.encode(encoding, "backslashreplace").decode(encoding)


def print_usage(parser: argparse.ArgumentParser) -> None:
    """Print version and usage information."""
    print(f"{settings.APP_NAME} version {settings.APP_VERSION}")
    print(parser.format_help())


def resolve_root(root: Optional[str]) -> str:
    """
    Absolute search root; the working directory when none is given.

    Raises:
        FatalError: If the working directory cannot be determined
    """
    # abspath() of a relative root also reads the working directory
    try:
        return os.path.abspath(root) if root else os.getcwd()
    except OSError as e:
        raise FatalError(f"Error getting current directory: {e}") from e


def cmd_search(args: argparse.Namespace) -> int:
    """Run one search and print its report."""
    try:
        root = resolve_root(args.root)
    except FatalError as e:
        print(e, file=sys.stderr)
        return EXIT_FATAL

    request = SearchRequest(
        root_path=root,
        pattern=args.terms[0],
        case_sensitive=args.case_sensitive,
        include_hidden=not args.exclude_hidden,
        include_subdirs=not args.exclude_subdirs,
        max_concurrency=args.max_concurrency,
        follow_symlinks=args.follow_symlinks,
        timeout=args.timeout
    )

    if not args.json:
        print("searching...", flush=True)

    cancel_event = threading.Event()
    try:
        report = SearchEngine(request, cancel_event=cancel_event).run()
    except FatalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    except KeyboardInterrupt:
        print("\nSearch interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    if args.json:
        print(printable(format_report_json(report, show_skipped=args.show_skipped)))
    else:
        print(printable(format_report(report, show_skipped=args.show_skipped)))

    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging("DEBUG")

    issues = settings.validate()
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    # Exactly one search string; anything else just shows usage
    if len(args.terms) != 1:
        print_usage(parser)
        return EXIT_OK

    return cmd_search(args)


if __name__ == "__main__":
    sys.exit(main())
