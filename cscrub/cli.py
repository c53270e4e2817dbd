#!/usr/bin/env python3
"""cscrub/cli.py — command-line entry point.

Usage examples
--------------
    # Report defects in a file (colour on a TTY, one-liners otherwise)
    cscrub analyze prog.c

    # Machine-readable output
    cscrub analyze prog.c --format json
    cscrub analyze prog.c --format sarif -o report.sarif

    # Drop a category or skip a checker
    cscrub analyze prog.c --suppress UnusedVariable --disable naming

    # Print the rewritten program, with transformation counters on stderr
    cscrub fix prog.c --stats

    # Read from stdin
    cat prog.c | cscrub fix -

    # List the registered checkers
    cscrub checkers

Exit codes
----------
    0   Success (no critical or error defects).
    1   At least one critical or error defect was found.
    2   Infrastructure failure (unreadable file, bad option, internal error).

``python -m cscrub`` runs :func:`main` through ``cscrub/__main__.py``.

License: MIT
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from cscrub import __version__
from cscrub.config import EngineOptions
from cscrub.defects import DefectCategory
from cscrub.engine import (
    AnalysisResult,
    analyze,
    analyze_and_transform,
    default_registry,
)
from cscrub.errors import CscrubError
from cscrub.reporter import Reporter, render_html, render_sarif

_log = logging.getLogger("cscrub")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

FORMATS = ("text", "json", "gcc", "summary", "sarif", "html")


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``cscrub`` logger.

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

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("cscrub")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(level)
    root.addHandler(handler)


def _read_source(raw: str) -> str:
    """Program text from *raw* (a path, or ``-`` for stdin)."""
    if raw == "-":
        return sys.stdin.read()
    p = Path(raw).expanduser().resolve()
    if not p.is_file():
        _log.error("input file not found: %s", p)
        raise SystemExit(EXIT_INFRA)
    try:
        return p.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        _log.error("cannot read %s: %s", p, exc)
        raise SystemExit(EXIT_INFRA)


def _display_name(raw: str) -> str:
    return "<stdin>" if raw == "-" else raw


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


def _options_from_args(args: argparse.Namespace) -> EngineOptions:
    return EngineOptions(
        suppressed_categories=frozenset(args.suppress or ()),
        disabled_checkers=frozenset(args.disable or ()),
        rename_variables=not getattr(args, "no_rename", False),
    )


def _emit_defects(result: AnalysisResult, fmt: str, stream: TextIO,
                  filename: str, source: str) -> None:
    """Write *result* to *stream* in the chosen format."""
    if fmt == "text":
        with Reporter(filename=filename, source=source, stream=stream,
                      tool_version=__version__) as rep:
            rep.report_all(result.defects)
    elif fmt == "json":
        if result.defects:
            stream.write(result.to_json_lines() + "\n")
    elif fmt == "gcc":
        for line in result.to_gcc_format(filename):
            stream.write(line + "\n")
    elif fmt == "summary":
        per_category: dict = {}
        for record in result.defects:
            per_category[record.category.value] = per_category.get(record.category.value, 0) + 1
        for tag, count in sorted(per_category.items()):
            stream.write(f"  {tag}: {count}\n")
        stream.write(result.summary() + "\n")
    elif fmt == "sarif":
        stream.write(render_sarif(result.defects, filename, __version__) + "\n")
    elif fmt == "html":
        stream.write(render_html(result.defects, filename))
    else:
        raise ValueError(f"unknown format: {fmt!r}")


def _exit_code(result: AnalysisResult) -> int:
    return EXIT_ERROR if result.has_errors else EXIT_OK


# ===========================================================================
# Subcommands
# ===========================================================================

def cmd_analyze(args: argparse.Namespace) -> int:
    """Report every defect found in the input."""
    source = _read_source(args.file)
    filename = _display_name(args.file)
    options = _options_from_args(args)

    _log.info("Analysing %s", filename)
    result = analyze(source, options)

    out = _open_output(args.output)
    try:
        _emit_defects(result, args.format, out, filename, source)
    finally:
        if out is not sys.stdout:
            out.close()
    return _exit_code(result)


def cmd_fix(args: argparse.Namespace) -> int:
    """Print the transformed program; defect summary goes to stderr."""
    source = _read_source(args.file)
    filename = _display_name(args.file)
    options = _options_from_args(args)

    _log.info("Transforming %s", filename)
    result = analyze_and_transform(source, options)

    out = _open_output(args.output)
    try:
        out.write(result.rendered_source() + "\n")
    finally:
        if out is not sys.stdout:
            out.close()

    print(f"{filename}: {result.summary()}", file=sys.stderr)
    if args.stats:
        for key, value in result.stats.to_dict().items():
            print(f"  {key}: {value}", file=sys.stderr)
    return _exit_code(result)


def cmd_checkers(args: argparse.Namespace) -> int:
    """List registered checkers and the categories they report."""
    for cls in default_registry().get_all():
        tags = ", ".join(sorted(c.value for c in cls.categories))
        print(f"{cls.name:<24} {cls.description}")
        if args.categories:
            print(f"{'':<24} [{tags}]")
    if args.categories:
        print()
        print("categories: " + ", ".join(DefectCategory.tags()))
    return EXIT_OK


# ---------------------------------------------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="cscrub",
        description=(
            "cscrub: defect detection and automatic clean-up for a small\n"
            "C-like dialect."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              cscrub analyze prog.c
              cscrub analyze prog.c --format sarif -o report.sarif
              cscrub fix prog.c --stats
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_input_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "file",
            metavar="FILE",
            help='Program to read ("-" for stdin).',
        )
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="OUT",
            help='Output file ("-" or omit for stdout).',
        )
        g = p.add_argument_group("selection")
        g.add_argument(
            "--suppress",
            nargs="+",
            default=None,
            metavar="CAT",
            help="Defect categories to drop (e.g. UnusedVariable).",
        )
        g.add_argument(
            "--disable",
            nargs="+",
            default=None,
            metavar="CHECKER",
            help="Checkers to skip (see `cscrub checkers`).",
        )

    # --- analyze -----------------------------------------------------------
    p_analyze = subparsers.add_parser(
        "analyze",
        aliases=["analyse"],
        help="Report defects in a program.",
    )
    _add_input_args(p_analyze)
    p_analyze.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default="text",
        help="Output format (default: text).",
    )
    p_analyze.set_defaults(func=cmd_analyze)

    # --- fix ---------------------------------------------------------------
    p_fix = subparsers.add_parser(
        "fix",
        help="Print the automatically cleaned-up program.",
    )
    _add_input_args(p_fix)
    p_fix.add_argument(
        "--stats",
        action="store_true",
        help="Print transformation counters on stderr.",
    )
    p_fix.add_argument(
        "--no-rename",
        action="store_true",
        help="Keep variable names as written.",
    )
    p_fix.set_defaults(func=cmd_fix)

    # --- checkers ----------------------------------------------------------
    p_checkers = subparsers.add_parser(
        "checkers",
        help="List the registered checkers.",
    )
    p_checkers.add_argument(
        "--categories",
        action="store_true",
        help="Also show the defect categories each checker reports.",
    )
    p_checkers.set_defaults(func=cmd_checkers)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the cscrub CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except CscrubError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130  # Standard UNIX convention for SIGINT
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
