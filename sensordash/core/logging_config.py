from __future__ import annotations

import logging
import sys

from sensordash.core.config import Settings

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("sensordash").setLevel(level)
    # Request lines from httpx would repeat every refresh tick.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
