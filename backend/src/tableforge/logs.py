"""Logging setup for TableForge processes."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOGGER_NAME = "tableforge"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO", path: Path | str | None = None) -> logging.Logger:
    """Configure the ``tableforge`` logger.

    Logs go to stderr and, when ``path`` is given, to a file in that
    directory rotated daily.

    Safe to call more than once; handlers are only installed the first time.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    if getattr(logger, "_tableforge_configured", False):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if path:
        log_dir = Path(path)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / "tableforge.log", when="midnight", backupCount=14
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger._tableforge_configured = True  # type: ignore[attr-defined]
    return logger
