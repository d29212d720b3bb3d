"""Loguru sinks.

Records go to stderr as text unless bound with ``json_output=True``, in which
case they are serialized. Setting ``log_dir`` adds a daily-rotated text file.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
LOG_FILE_NAME = "pet-adoption-api.log"


def _wants_json(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace all loguru sinks with the service's own.

    Safe to call repeatedly (app startup, each CLI invocation, tests).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, filter=lambda record: not _wants_json(record))
    logger.add(sys.stderr, level=level, serialize=True, filter=_wants_json)

    if not log_dir:
        return
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    logger.add(directory / LOG_FILE_NAME, level=level, format=_LOG_FORMAT, rotation="24h", retention="14 days")
