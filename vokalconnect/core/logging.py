from __future__ import annotations

import logging

from vokalconnect.core.config import get_settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging() -> None:
    # Configure the root logger once; repeated app factories reuse the handler.
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
    root.setLevel(level)
    # httpx logs full request URLs, which can carry OAuth codes.
    logging.getLogger("httpx").setLevel(logging.WARNING)
