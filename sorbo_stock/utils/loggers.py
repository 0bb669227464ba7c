import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name="sorbo_stock", level=None):
    """
    Logger with a single stream handler, installed on first use.

    The level comes from `level`, else SORBO_LOG_LEVEL (e.g. "DEBUG"), else INFO.
    Child loggers ("sorbo_stock.sales") propagate to the package logger, so
    configuring the root "sorbo_stock" logger once is enough.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = os.environ.get("SORBO_LOG_LEVEL", "INFO").upper()
    if not logger.handlers and "." not in name:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
