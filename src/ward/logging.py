"""Centralized logging configuration for Ward.

All entry points should call configure_logging() early.

Logging Levels:
- DEBUG: Backend commands, idempotent no-ops (already installed/running)
- INFO: State changes (installed, started, stopped, removed)
- WARNING: Failed or timed out start/stop jobs
- ERROR: Failures surfaced to the CLI user
"""

import logging
import os

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ComponentFormatter(logging.Formatter):
    """Formatter that extracts component name from logger path.

    Converts full module paths to short component names:
    - ward.service.controller -> service
    - ward.config.loader -> config
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = record.name.split(".")
        if len(parts) >= 2 and parts[0] == "ward":
            record.component = parts[1]
        else:
            record.component = parts[0]
        return super().format(record)


def resolve_level(level: str | None = None) -> str:
    """Resolve a log level name, falling back to WARD_LOG_LEVEL or INFO."""
    if level is None:
        level = os.environ.get("WARD_LOG_LEVEL", "INFO")
    level = level.upper()
    if level not in LEVELS:
        level = "INFO"
    return level


def configure_logging(level: str | None = None, use_rich: bool = False) -> None:
    """Configure logging for Ward.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses WARD_LOG_LEVEL env var or INFO.
        use_rich: Use Rich handler for colorful terminal output.
    """
    log_level = getattr(logging, resolve_level(level))

    console_handler: logging.Handler
    if use_rich:
        from rich.logging import RichHandler

        console_handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        console_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(
        level=log_level,
        handlers=[console_handler],
        force=True,
    )
