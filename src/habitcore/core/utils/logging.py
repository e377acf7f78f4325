"""
loguru sinks for habitcore.

Library code only ever calls ``logger.<level>(...)``. The host decides where
records go, either by calling one of these helpers at startup or by
configuring loguru itself.
"""

import os
import sys

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> {name}: {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"
LOG_FILE_NAME = "habitcore.log"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's sinks with stderr and, optionally, a rotating file.

    Args:
        level: Minimum level for both sinks.
        log_file: File sink path; None logs to stderr only.
        fmt: Console format.
        rotation: Size at which the file sink rotates.
        retention: Age after which rotated files are removed.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)
    if not log_file:
        return
    logger.add(
        log_file,
        level=level,
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        # writes from any thread or task go through one queue
        enqueue=True,
    )


def setup_logging_from_config(config, level: str = "INFO") -> str:
    """Log to ``<paths.log_dir>/habitcore.log`` at ``logging.level`` (default *level*).

    Returns the log file path.
    """
    log_dir = config.get("paths.log_dir") or os.path.join(config.get_data_dir(), "logs")
    log_dir = os.path.expanduser(log_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, LOG_FILE_NAME)
    setup_logging(level=config.get("logging.level", level), log_file=log_file)
    return log_file
