from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from authsession.core.config.models import LoggingConfig
from authsession.core.trace import current_trace_id

LOGGER_NAME = "authsession"
LOG_FILE = "authsession.log"


class TraceIdFilter(logging.Filter):
    """Stamps each record with the trace id of the running auth operation."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = current_trace_id("-")
        return True


def resolve_level(cfg: LoggingConfig, *, verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(cfg.level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(cfg: LoggingConfig, *, verbose: bool = False) -> logging.Logger:
    """
    Configure the package logger from the logging config section.

    Safe to call repeatedly: the rotating file handler is swapped when the
    log directory changes, and the console handler is installed once.
    """
    os.makedirs(cfg.log_dir, exist_ok=True)
    text_path = os.path.abspath(os.path.join(cfg.log_dir, LOG_FILE))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(cfg, verbose=verbose))
    logger.propagate = False

    for h in list(logger.handlers):
        if isinstance(h, RotatingFileHandler) and h.baseFilename != text_path:
            logger.removeHandler(h)
            h.close()

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        fh = RotatingFileHandler(text_path, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(trace_id)s | %(message)s"))
        fh.addFilter(TraceIdFilter())
        logger.addHandler(fh)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler) for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(sh)

    return logger
