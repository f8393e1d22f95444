"""
config.py
~~~~~~~~~

Environment-driven settings and logging setup for scripts that use ffnet.

Library modules only create loggers; call :func:`configure_logging` once
from the entry point.

Environment variables:
- ``LOG_LEVEL``: logging level name (default ``INFO``)
- ``FFNET_MODEL_DIR``: directory of the model store (default ``models``)
- ``FFNET_LEARNING_RATE``: default learning rate (default ``0.1``)
- ``FFNET_EPOCHS``: default number of epochs (default ``1000``)
"""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_MODEL_DIR = 'models'
DEFAULT_LEARNING_RATE = 0.1
DEFAULT_EPOCHS = 1000

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging() -> None:
    """Set up root logging from ``LOG_LEVEL``."""
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # Matplotlib's font manager is chatty at DEBUG
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def model_dir() -> str:
    return os.getenv('FFNET_MODEL_DIR', DEFAULT_MODEL_DIR)


def learning_rate() -> float:
    raw = os.getenv('FFNET_LEARNING_RATE')
    if raw is None:
        return DEFAULT_LEARNING_RATE
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            f"Ignoring FFNET_LEARNING_RATE={raw!r}: not a number, "
            f"using {DEFAULT_LEARNING_RATE}"
        )
        return DEFAULT_LEARNING_RATE
    if value <= 0:
        logger.warning(
            f"Ignoring FFNET_LEARNING_RATE={raw!r}: must be positive, "
            f"using {DEFAULT_LEARNING_RATE}"
        )
        return DEFAULT_LEARNING_RATE
    return value


def epochs() -> int:
    raw = os.getenv('FFNET_EPOCHS')
    if raw is None:
        return DEFAULT_EPOCHS
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            f"Ignoring FFNET_EPOCHS={raw!r}: not an integer, "
            f"using {DEFAULT_EPOCHS}"
        )
        return DEFAULT_EPOCHS
    if value < 0:
        logger.warning(
            f"Ignoring FFNET_EPOCHS={raw!r}: must be non-negative, "
            f"using {DEFAULT_EPOCHS}"
        )
        return DEFAULT_EPOCHS
    return value
