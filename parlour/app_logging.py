"""Structured logging for the parlour service."""

import logging

from pythonjsonlogger import jsonlogger


def setup_logger(level: int = logging.INFO) -> None:
    """Emit JSON log lines from the root logger."""
    log_handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )
    log_handler.setFormatter(formatter)
    logger = logging.getLogger()
    logger.addHandler(log_handler)
    logger.setLevel(level)
