"""Logging configuration helpers."""

import logging
from pathlib import Path

_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


def configure_logging(log_file: str | Path | None = None) -> None:
    """Configure console logging and, optionally, an append-only log file.

    The console only shows INFO and above. The log file also receives DEBUG
    records, which is where throttled progress lines end up.
    """
    logger = logging.getLogger("ipfs_backup")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    if not any(_is_console_handler(handler) for handler in logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(logging.INFO)
        console.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(console)
    if log_file is None:
        return
    target = Path(log_file).resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(
            handler.baseFilename
        ) == target:
            return
    file_handler = logging.FileHandler(target, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(file_handler)


def _is_console_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and not isinstance(
        handler, logging.FileHandler
    )
