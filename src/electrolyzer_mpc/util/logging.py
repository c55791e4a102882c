"""This module provides a centralized utility for configuring and managing application logging.

It defines the `LoggingUtil` class, which offers a static method to retrieve
pre-configured logger instances. Every module of the comparison engine logs
through it, so the controllers, the prediction model and the orchestrator share
one format and one level, adjustable through the `LOGLEVEL` environment variable.
"""

import logging
import os


class LoggingUtil:
    """A utility class for configuring and retrieving loggers.

    The log level is read from the `LOGLEVEL` environment variable every time a
    logger is requested, and falls back to INFO when the value is not a known
    level name.
    """

    LOG_FORMAT = "%(asctime)s - [%(name)s][%(levelname)s] %(message)s"

    @staticmethod
    def get_logger(logger_name: str) -> logging.Logger:
        """Retrieves a configured logger instance.

        Args:
            logger_name: The name of the logger to retrieve (typically `__name__`
                         of the calling module).

        Returns:
            A configured `logging.Logger` instance writing to the console.
        """
        logger = logging.getLogger(logger_name)
        log_level = os.getenv("LOGLEVEL", "INFO").upper()

        if log_level not in logging.getLevelNamesMapping():
            log_level = "INFO"

        logger.setLevel(log_level)

        # Handlers are attached only once per logger name
        if not logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(LoggingUtil.LOG_FORMAT))
            logger.addHandler(console_handler)

        return logger
