"""
Operational logging setup.

Configures the standard library root logger with a console handler and,
when a log directory is given, a file handler.
"""

import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "stockfolio.log"


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str | Path] = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the log file (console only if None)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / LOG_FILE_NAME))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
