"""
Logging setup for applications embedding the flowgraph package.

Library modules only create loggers; nothing is configured on import.
"""

import logging
import sys
from typing import Optional, TextIO, Union

from pythonjsonlogger import jsonlogger

PACKAGE_LOGGER = "flowgraph"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_format: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Calling this again replaces the handler it installed earlier.

    Args:
        level: Log level for the package logger
        json_format: Emit one JSON object per record
        stream: Output stream (defaults to stderr)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_flowgraph_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_format:
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._flowgraph_handler = True
    logger.addHandler(handler)
    return logger
