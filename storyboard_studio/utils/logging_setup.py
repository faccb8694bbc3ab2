"""Rich console logging shared by the CLIs and the API server."""

import logging
import os
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "storyboard_studio"
# HTTP and SDK chatter, only shown when debugging
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def resolve_level(level: Optional[str] = None) -> str:
    return (level or os.getenv("STUDIO_LOGLEVEL") or "INFO").upper()


def configure_logging(level: Optional[str] = None, quiet: Iterable[str] = NOISY_LOGGERS) -> logging.Logger:
    log_level = resolve_level(level)
    handler = RichHandler(
        console=Console(stderr=True),
        markup=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    logging.basicConfig(level=log_level, format="%(name)s: %(message)s", handlers=[handler])

    third_party_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in quiet:
        logging.getLogger(name).setLevel(third_party_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    return logger
