"""Command-line tool: list or extract the contents of one archive."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rpakit.archive import ArchiveError, open_archive
from rpakit.logging_config import LogMode, configure_logging
from rpakit.services.archive_service import log_diagnostics
from rpakit.services.extract_service import default_output_dir, extract_archive
from rpakit.services.file_tree import build_file_tree, render_file_tree

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_USAGE = 2
EXIT_PARTIAL = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpakit",
        description="List or extract files from Ren'Py (.rpa) archives.",
    )
    parser.add_argument("-f", "--archive", required=True, type=Path, help="Path to the archive")

    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("-l", "--list", action="store_true", help="List all files in the archive")
    action.add_argument("-x", "--extract", action="store_true", help="Extract all files")

    parser.add_argument(
        "-o", "--output", type=Path, help="Directory to extract files to (only with -x)"
    )
    parser.add_argument(
        "--tree", action="store_true", help="Render the listing as a tree (only with -l)"
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print the listing and errors that stop the run",
    )
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Print detailed output")
    return parser


def _log_mode(args: argparse.Namespace) -> LogMode:
    if args.quiet:
        return LogMode.QUIET
    if args.verbose:
        return LogMode.VERBOSE
    return LogMode.NORMAL


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.output is not None and not args.extract:
        parser.error("-o/--output only works with -x/--extract")
    if args.tree and not args.list:
        parser.error("--tree only works with -l/--list")

    mode = _log_mode(args)
    configure_logging(mode)

    archive_path: Path = args.archive
    try:
        archive = open_archive(archive_path)
    except (ArchiveError, OSError) as exc:
        logger.error("Failed to open archive %s: %s", archive_path, exc)
        return EXIT_LOAD_FAILED

    with archive:
        log_diagnostics(archive)
        logger.debug("Opened %s as %s (%d entries)", archive_path, archive.version, len(archive))

        if args.list:
            paths = archive.get_files()
            lines = render_file_tree(build_file_tree(paths)) if args.tree else paths
            sys.stdout.write("".join(f"{line}\n" for line in lines))
            return EXIT_OK

        output_dir = args.output or default_output_dir(archive_path)
        logger.info("Extracting files to %s", output_dir)
        result = extract_archive(archive, output_dir)

    if result.files_failed:
        logger.error("%d file(s) could not be extracted", result.files_failed)
        return EXIT_PARTIAL
    logger.info("Done.")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
