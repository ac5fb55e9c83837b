"""
Logger utility.
"""
import logging

FORMAT = '[%(asctime)s] [%(name)s] %(levelname)s: %(message)s'


def get_logger(name=None, level=logging.INFO):
    """Retrieve a configured logger."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
        logger.setLevel(level)
    return logger


def set_level(level):
    """Set the level of every logger handed out under the ``physsim`` namespace."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("physsim"):
            logging.getLogger(name).setLevel(level)
