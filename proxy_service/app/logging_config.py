"""Process-wide logging setup."""
from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s - %(message)s"

_CONFIGURED = False


def configure_logging(level: str = "INFO") -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    _CONFIGURED = True
