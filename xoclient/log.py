# xoclient/log.py
import logging
from typing import Optional

PACKAGE_LOGGER = "xoclient"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(development: bool = False, parent: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Set up the package logger.
    DEBUG in development mode, INFO otherwise. When the caller passes its own
    logger, library records are forwarded to it instead of getting a handler here.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if development else logging.INFO)
    for handler in list(logger.handlers):
        if getattr(handler, "_xoclient_forward", False):
            logger.removeHandler(handler)

    if parent is not None:
        logger.propagate = False
        logger.addHandler(_ForwardHandler(parent))
        return logger

    logger.propagate = True
    if not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


class _ForwardHandler(logging.Handler):
    _xoclient_forward = True

    def __init__(self, target: logging.Logger):
        super().__init__()
        self.target = target

    def emit(self, record):
        if self.target.isEnabledFor(record.levelno):
            self.target.handle(record)
