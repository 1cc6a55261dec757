"""
bsl_checkers/__main__.py
════════════════════════

Command-line entry point.

Usage
─────
    bsl-checkers check src/ --format sarif --output report.sarif
    bsl-checkers check Module.bsl --language ru -v
    bsl-checkers list-checkers
    bsl-checkers dump-ast Module.bsl --sexp

    python -m bsl_checkers <command> ...

Exit codes
──────────
    0  no diagnostics
    1  usage error
    2  infrastructure error (missing file, bad configuration, parse failure)
    3  diagnostics were reported
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from bsl_checkers import __version__
from bsl_checkers.checkers import DEFAULT_REGISTRY, CheckerRunner
from bsl_checkers.config import (
    LinterConfiguration,
    find_configuration,
    load_configuration,
)
from bsl_checkers.errors import BslParseError, ConfigurationError
from bsl_checkers.grammar import parse_file
from bsl_checkers.messages import SUPPORTED_LANGUAGES
from bsl_checkers.reporter import OUTPUT_FORMATS, Reporter
from bsl_checkers.tree import format_tree, to_sexp

_log = logging.getLogger("bsl_checkers")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_VIOLATION: int = 3


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``bsl_checkers`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("bsl_checkers")
    root.setLevel(level)
    if any(getattr(h, "_bsl_checkers_cli", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._bsl_checkers_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _resolve_configuration(args: argparse.Namespace) -> LinterConfiguration:
    if args.config:
        config = load_configuration(args.config)
    else:
        found = find_configuration(args.paths[0]) if args.paths else None
        config = load_configuration(found) if found else LinterConfiguration()
    if args.language:
        config.language = args.language
    for code in args.suppress or ():
        if code not in config.suppress:
            config.suppress.append(code)
    return config


# ===========================================================================
# Commands
# ===========================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    try:
        config = _resolve_configuration(args)
    except ConfigurationError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    runner = CheckerRunner(configuration=config)
    try:
        results = runner.run_paths(args.paths, checkers=args.checkers, jobs=args.jobs)
    except FileNotFoundError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    stream = _open_output(args.output)
    try:
        with Reporter(
            stream=stream,
            fmt=args.format,
            language=config.language,
            tool_version=__version__,
            summary=not args.quiet,
        ) as rep:
            rep.report_all(results.diagnostics)
    finally:
        if stream is not sys.stdout:
            stream.close()

    _log.info("%s", results.summary())

    for err in results.parse_errors:
        print(f"error: {err}", file=sys.stderr)
    if results.parse_errors:
        return EXIT_INFRA
    return EXIT_VIOLATION if results.diagnostics else EXIT_OK


def cmd_list_checkers(args: argparse.Namespace) -> int:
    """Handle the 'list-checkers' command."""
    for cls in sorted(DEFAULT_REGISTRY.get_all(), key=lambda c: c.code):
        name = cls.display_name(args.language)
        tags = ", ".join(sorted(cls.tags))
        print(f"{cls.code}")
        print(f"    {name}")
        print(f"    type={cls.diagnostic_type.value} severity={cls.default_severity.label} "
              f"scope={cls.scope.value} minutes_to_fix={cls.minutes_to_fix} tags=[{tags}]")
    return EXIT_OK


def cmd_dump_ast(args: argparse.Namespace) -> int:
    """Handle the 'dump-ast' command."""
    try:
        tree = parse_file(args.input)
    except BslParseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INFRA

    if args.sexp:
        print(to_sexp(tree.root))
    else:
        print(format_tree(tree.root))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the bsl-checkers CLI."""

    parser = argparse.ArgumentParser(
        prog="bsl-checkers",
        description="Static checks for 1C:Enterprise (BSL) and OneScript modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s check src/
              %(prog)s check Module.bsl --format json
              %(prog)s check src/ --format sarif -o report.sarif
              %(prog)s list-checkers
              %(prog)s dump-ast Module.bsl --sexp
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="available commands",
        metavar="<command>",
    )

    # ── check ────────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check",
        help="Check BSL / OneScript files and directories",
        description=(
            "Parse every *.bsl and *.os file under the given paths and "
            "report diagnostics. Exit status 3 means diagnostics were found."
        ),
    )
    p_check.add_argument("paths", nargs="+", help="Files or directories to check")
    p_check.add_argument(
        "-f", "--format",
        choices=OUTPUT_FORMATS,
        default="text",
        help="Output format (default: text)",
    )
    p_check.add_argument(
        "-o", "--output",
        default=None,
        help="Write the report to this file instead of stdout",
    )
    p_check.add_argument(
        "--language",
        choices=SUPPORTED_LANGUAGES,
        default=None,
        help="Message language (overrides the configuration file)",
    )
    p_check.add_argument(
        "-c", "--config",
        default=None,
        help="Path to a .bsl-language-server.json file "
             "(default: searched upwards from the first path)",
    )
    p_check.add_argument(
        "--checkers",
        nargs="+",
        metavar="CODE",
        default=None,
        help="Run only these checker codes",
    )
    p_check.add_argument(
        "--suppress",
        nargs="+",
        metavar="CODE",
        default=None,
        help="Globally suppress these diagnostic codes",
    )
    p_check.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="Number of files checked in parallel (default: 1)",
    )
    p_check.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Do not print the summary line",
    )
    p_check.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    p_check.set_defaults(func=cmd_check)

    # ── list-checkers ────────────────────────────────────────────────────

    p_list = subparsers.add_parser(
        "list-checkers",
        help="List registered checkers and their metadata",
    )
    p_list.add_argument(
        "--language",
        choices=SUPPORTED_LANGUAGES,
        default="en",
        help="Language of checker names (default: en)",
    )
    p_list.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity")
    p_list.set_defaults(func=cmd_list_checkers)

    # ── dump-ast ─────────────────────────────────────────────────────────

    p_dump = subparsers.add_parser(
        "dump-ast",
        help="Parse a file and print its syntax tree",
    )
    p_dump.add_argument("input", help="BSL / OneScript source file")
    p_dump.add_argument(
        "--sexp",
        action="store_true",
        default=False,
        help="Print the tree as an S-expression",
    )
    p_dump.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity")
    p_dump.set_defaults(func=cmd_dump_ast)

    return parser


# ===========================================================================
# Main
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the bsl-checkers CLI.

    Returns
    -------
    int
        Exit code (see module docstring).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    _configure_logging(args.verbose)

    if args.command == "check" and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130


if __name__ == "__main__":
    sys.exit(main())
