"""Logging setup for the zelo process."""

import logging
import sys

from zelo.config.schema import LoggingConfig

_HANDLER_NAME = "zelo-stderr"


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Attach a single stderr handler to the ``zelo`` logger.

    stdout stays untouched because the stdio transport writes JSON-RPC
    responses there. Calling this twice does not duplicate handlers.
    """
    logger = logging.getLogger("zelo")
    logger.setLevel(config.level)

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setFormatter(logging.Formatter(config.format))
            return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(handler)
    return logger
