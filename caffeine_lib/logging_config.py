from __future__ import annotations
import logging
from typing import Optional


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure root logging for the application.

    `level` is a logging level name (e.g. "INFO"); unknown names fall back
    to WARNING. Returns a module logger for the caller.
    """
    default_level = logging.WARNING
    if level:
        numeric = getattr(logging, level.upper(), None)
        if isinstance(numeric, int):
            default_level = numeric

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=default_level, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logging.log(100, f'[caffeine]: Log level set to: {logging.getLevelName(default_level)}')
    logger = logging.getLogger(__name__)

    # Keep known noisy libraries quiet by default
    logging.getLogger('pymongo').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('multipart').setLevel(logging.WARNING)

    return logger
