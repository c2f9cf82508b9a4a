import logging
import os

from shazam_signature.config import LoggingConfig


def resolve_level(level):
    """Level from the environment override, else the caller's level."""
    override = os.environ.get(LoggingConfig.LEVEL_ENV_VAR)
    if override:
        return logging.getLevelName(override.upper())
    return level


def setup_logger(name=None, level=logging.INFO):
    """
    Set up a console logger with file and line number information.

    Args:
        name: Logger name (use __name__ to get module name)
        level: Logging level (DEBUG, INFO, WARNING, ERROR); the
            SHAZAM_SIGNATURE_LOG_LEVEL environment variable wins if set

    Returns:
        logger: Configured logger instance
    """
    level = resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # One handler per logger, however often a module is imported
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(fmt=LoggingConfig.FORMAT, datefmt=LoggingConfig.DATE_FORMAT)
    )
    logger.addHandler(console_handler)

    return logger
