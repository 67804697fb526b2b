import logging
import sys

from pythonjsonlogger import json

SERVICE_NAME = "stocktrack"


def get_logger(name: str = SERVICE_NAME) -> logging.Logger:
    """
    Child loggers ("stocktrack.orders", ...) propagate to the service logger,
    which owns the only handler.
    """
    return logging.getLogger(name)


def setup_logging(level: str = "INFO", json_log: bool = True) -> logging.Logger:
    logger = logging.getLogger(SERVICE_NAME)
    logger.setLevel(level.upper())

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    if json_log:
        formatter = json.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            static_fields={"service": SERVICE_NAME},
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger
