"""
Logging setup for the docsession CLI and hosting processes.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from docsession.config import LOG_FILE

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    *, debug: bool = False, log_file: bool = True, path: str | Path = LOG_FILE
) -> None:
    """Configure logging to stdout and optionally to file."""
    level = logging.DEBUG if debug else logging.INFO

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
    ]

    if log_file:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
