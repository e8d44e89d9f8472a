#!/usr/bin/env python3
"""clc.log

Logging setup shared by the clc modules.

Library modules only ever call get_logger(__name__); handlers are installed
by setup_logging(), which the CLI calls once at startup. Importing clc has no
logging side effects.

Example:
    >>> from clc.log import setup_logging, get_logger
    >>> setup_logging("DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("Loading vintage 2018")
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER = "clc"


def setup_logging(level: Union[int, str] = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Install console (and optional file) handlers on the clc root logger.

    Console output is the bare message at `level`; the file handler, if
    requested, captures DEBUG with timestamps and module names.
    Calling it again replaces the previous handlers.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level.upper() if isinstance(level, str) else level)
    console.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
        logger.debug(f"Logging to {log_file}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the clc root logger."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
