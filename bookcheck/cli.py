"""Command line interface.

Usage:
    bookcheck test [-- PYTEST_ARGS...]   # run every code sample under pytest
    bookcheck run                        # run every code sample, plain report
    bookcheck lint                       # check heading cross-references
    bookcheck stats                      # count code samples and lines
    bookcheck convert                    # Markua to GFM for EPUB and PDF builds

Every command reads ``bookcheck.yaml`` from the working directory unless
``--config`` names another file; the manuscript directory is resolved
against the directory holding the configuration.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pytest

from . import __version__
from .config import Config, load_config
from .convert import convert_manuscript
from .errors import BookcheckError
from .harness import Harness
from .linter import lint_manuscript
from .logger import setup_logger
from .stats import manuscript_stats

logger = logging.getLogger(__name__)


def _base_dir(args: argparse.Namespace) -> Path:
    if args.config:
        return Path(args.config).resolve().parent
    return Path.cwd()


def cmd_test(args: argparse.Namespace, config: Config) -> int:
    manuscript = config.manuscript_path(_base_dir(args))
    pytest_args = ["-p", "bookcheck.plugin", "--manuscript", str(manuscript)]
    if args.config:
        pytest_args += ["--bookcheck-config", str(Path(args.config).resolve())]
    pytest_args += [str(manuscript), *args.pytest_args]
    logger.debug("pytest %s", " ".join(pytest_args))
    return int(pytest.main(pytest_args))


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    report = Harness(config, base=_base_dir(args)).run()

    for document in report.documents:
        for result in document.failures:
            print(f"FAILED {document.document}::{result.name}", file=sys.stderr)
            print(result.error, file=sys.stderr)

    failed = len(report.failures)
    print(f"{len(report.results) - failed} passed, {failed} failed")
    return 0 if report.passed else 1


def cmd_lint(args: argparse.Namespace, config: Config) -> int:
    issues = lint_manuscript(
        config.manuscript_path(_base_dir(args)),
        config.pattern,
        ignore_documents=config.lint.ignore_documents,
    )
    if issues:
        print(f"Found {len(issues)} broken cross-reference(s):\n", file=sys.stderr)
        for issue in issues:
            print(f"  {issue}", file=sys.stderr)
        return 1

    print("Cross-reference check passed.")
    return 0


def cmd_stats(args: argparse.Namespace, config: Config) -> int:
    stats = manuscript_stats(config.manuscript_path(_base_dir(args)), config.pattern)
    print(stats)
    if args.by_language:
        print()
        print(stats.by_language.to_string())
    if args.by_document:
        print()
        print(stats.by_document.to_string())
    return 0


def cmd_convert(args: argparse.Namespace, config: Config) -> int:
    base = _base_dir(args)
    written = convert_manuscript(
        config.manuscript_path(base),
        base / args.epub_dir,
        base / args.pdf_dir,
        config.pattern,
    )
    print(f"Wrote {len(written)} file(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookcheck",
        description="Test, lint and convert the code samples of a Markdown book.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", default=None, help="configuration file (default: ./bookcheck.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    test = subparsers.add_parser("test", help="run every code sample as a pytest item")
    test.add_argument("pytest_args", nargs="*", help="extra pytest arguments, after --")
    test.set_defaults(func=cmd_test)

    run = subparsers.add_parser("run", help="run every code sample and print a summary")
    run.set_defaults(func=cmd_run)

    lint = subparsers.add_parser("lint", help="check heading anchors and links")
    lint.set_defaults(func=cmd_lint)

    stats = subparsers.add_parser("stats", help="count code samples and lines of code")
    stats.add_argument("--by-language", action="store_true", help="break down by language")
    stats.add_argument("--by-document", action="store_true", help="break down by document")
    stats.set_defaults(func=cmd_stats)

    convert = subparsers.add_parser("convert", help="convert the manuscript to GFM")
    convert.add_argument("--epub-dir", default="generator/content-epub", help="EPUB output directory")
    convert.add_argument("--pdf-dir", default="generator/content-pdf", help="PDF output directory")
    convert.set_defaults(func=cmd_convert)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logger(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = load_config(args.config)
        return args.func(args, config)
    except BookcheckError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
