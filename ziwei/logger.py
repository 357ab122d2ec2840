import logging
import sys

from ziwei.settings import LOG_LEVEL


def setup_logger(name: str = "ziwei", log_level: str = LOG_LEVEL) -> logging.Logger:
    """Setup and return a logger instance writing to the console"""

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    console_format = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # stderr keeps stdout clean for the JSON the CLI prints
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    return logger
