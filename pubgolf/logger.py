"""
Logging setup for the pub golf scoreboard.
"""

import logging


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger with a single stream handler attached.

    @param name: Logger name, usually the calling module's __name__
    @return: Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

        logger.propagate = False

    return logger
