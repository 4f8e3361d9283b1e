"""Logging configuration for the EvaSoil dashboard and ingest server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the root logger with a console handler and an optional file handler.

    Parameters
    ----------
    level
        Root level name (``DEBUG``, ``INFO``...). Unknown names fall back to INFO.
    log_file
        Optional log file path; parent directories are created.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Repeated calls (tests, re-launch from the same process) replace our handlers.
    for h in list(root_logger.handlers):
        if getattr(h, "_evasoil", False):
            root_logger.removeHandler(h)
            h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler._evasoil = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._evasoil = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)

    # Quiet down noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging initialized (level=%s, file=%s)", level, log_file)
