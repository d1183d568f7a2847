"""
This module sets up console logging for the application.
"""
import logging


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the root logger with a single console handler.
    """
    # Get the root logger
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG; keep it at WARNING unless asked.
    if level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.info(f"Logging configured at level {logging.getLevelName(level)}.")
