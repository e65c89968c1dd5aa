"""Process-wide logging setup for riftwatch entry points."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO/DEBUG
NOISY_LOGGERS = ("aiohttp", "asyncio", "uvicorn.access")


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root handler and the ``riftwatch`` logger.

    Library modules only create loggers with ``logging.getLogger(__name__)``;
    handlers are installed here, by whichever entry point runs the service.
    Calling it again replaces the previous configuration.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if not specified.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    name = (level or "INFO").upper()
    log_level = logging.getLevelName(name)
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("riftwatch").setLevel(log_level)

    logging.getLogger(__name__).info(f"Logging initialized at level: {name}")
