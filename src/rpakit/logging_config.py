"""Logging setup shared by the CLI and the API server."""

import logging
import sys
from enum import StrEnum


class LogMode(StrEnum):
    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


_LEVELS: dict[LogMode, int] = {
    LogMode.QUIET: logging.CRITICAL,
    LogMode.NORMAL: logging.INFO,
    LogMode.VERBOSE: logging.DEBUG,
}


def configure_logging(mode: LogMode = LogMode.NORMAL) -> None:
    logging.basicConfig(
        level=_LEVELS[mode],
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(max(logging.WARNING, _LEVELS[mode]))
