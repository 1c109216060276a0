"""Logging setup.

Modules log through ``logging.getLogger(__name__)`` and pass structured
context (``adapter_id``, ``source_id``, ``url``) with ``extra=``. The CLI
calls :func:`configure_logging` once at startup.
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

STRUCTURED_FIELDS = ("adapter_id", "source_id", "url", "event")


class StructuredFormatter(logging.Formatter):
    """Plain formatter that appends structured ``extra`` fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = [
            f"{key}={getattr(record, key)}"
            for key in STRUCTURED_FIELDS
            if getattr(record, key, None) is not None
        ]
        if fields:
            return f"{base} [{' '.join(fields)}]"
        return base


def configure_logging(level: str = "INFO", rich_output: bool = True) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        rich_output: Render with rich when attached to a terminal
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if rich_output and sys.stderr.isatty():
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(StructuredFormatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            StructuredFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    for noisy in ("httpx", "httpcore", "psycopg", "psycopg.pool", "trafilatura"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
