from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

from .merge import create_mono
from .reporting import summarize_cli, write_markdown_report
from .workspace import MonoError, MonoSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tomono",
        description=(
            "Merge repositories into one monorepo, keeping every branch and tag. "
            "Reads '<location> <name> [<folder>]' lines from stdin. The monorepo is "
            "created in $MONOREPO_NAME (default 'core') under the current directory; "
            "set GIT_TMPDIR to give git a separate temporary directory."
        ),
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--continue",
        dest="resume",
        action="store_true",
        help="Resume an interrupted run in the existing monorepo directory.",
    )
    parser.add_argument(
        "--primary-branch",
        help="Branch name that is merged without a repository prefix (default: master).",
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Write a Markdown summary of the run to this path.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def run(args: argparse.Namespace, stdin: TextIO) -> int:
    configure_logging(args.verbose)
    logging.debug("Arguments: %s", args)

    settings = MonoSettings.from_env()
    if args.primary_branch:
        settings = dataclasses.replace(settings, primary_branch=args.primary_branch)

    result = create_mono(stdin, settings, resume=args.resume)
    logging.info("\n%s", summarize_cli(result))
    if args.report:
        write_markdown_report(args.report.expanduser(), result)
    return 0


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args, stdin if stdin is not None else sys.stdin)
    except MonoError as exc:
        logging.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        logging.error("Interrupted")
        return 130


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
