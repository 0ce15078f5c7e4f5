import logging

from tracecore.config import DEBUG, LOG_FORMAT, LOG_LEVEL


def get_logger(name=__name__, level=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        ch = logging.StreamHandler()
        fmt = logging.Formatter(LOG_FORMAT)
        ch.setFormatter(fmt)
        logger.addHandler(ch)
    if level is None:
        level = "DEBUG" if DEBUG else LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(level)
    return logger


__all__ = ["get_logger"]
