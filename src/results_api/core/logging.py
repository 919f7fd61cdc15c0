"""Loguru logging configuration.

Text lines on stderr by default. Records bound with ``json_output=True``
(or every record, when ``json_format`` is set) are serialized as JSON
instead. A rotating file sink is added when a log directory is given.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
_LOG_FILE_NAME = "results-api.log"


def _wants_json(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, json_format: bool = False) -> None:
    """Replace all Loguru sinks with this service's sinks.

    Args:
        log_level: Minimum level, case-insensitive.
        log_dir: Directory for ``results-api.log`` (rotated every 24 hours,
            kept 7 days). No file sink when unset.
        json_format: Serialize every stderr record as JSON.
    """
    level = log_level.upper()
    logger.remove()

    if json_format:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_LOG_FORMAT, filter=lambda record: not _wants_json(record))
        logger.add(sys.stderr, level=level, serialize=True, filter=_wants_json)

    if not log_dir:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_path / _LOG_FILE_NAME,
        level=level,
        format=_LOG_FORMAT,
        rotation="24h",
        retention="7 days",
    )
