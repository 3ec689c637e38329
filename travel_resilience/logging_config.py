"""loguru sinks for the CLI"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Send logs to stderr, and to a rotating file when log_file is given"""
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if verbose else "INFO",
        colorize=True,
    )

    if log_file is None:
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    # Bound context (circuit, error code, details) lands in {extra}
    logger.add(
        log_file,
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="50 MB",
        retention=10,
        compression="gz",
        enqueue=True,
    )
    logger.debug(f"File logging enabled: {log_file}")
