"""Logging configuration with Rich formatting.

Provides setup_logging() for process start-up and get_logger() for module-level loggers.
Records go to stderr; stdout is reserved for fetch reports.
"""

import logging
from rich.console import Console
from rich.logging import RichHandler

def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=Console(stderr=True))]
    )

    # Quiet down some noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

def get_logger(name: str):
    return logging.getLogger(name)
