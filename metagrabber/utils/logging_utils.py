"""
Logging Utilities

Console logging for the API and the transcription pipeline. Every line carries
a job ID so the output of concurrent jobs can be told apart in one stream.
Lines logged outside a job show "-" in place of the ID.
"""
import logging
from typing import Optional

LOGGER_NAME = "metagrabber"
LOG_FORMAT = '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class _DefaultRequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(log_level: int = logging.INFO, logger_name: str = LOGGER_NAME) -> logging.Logger:
    """
    Attach a console handler to the application logger.

    Safe to call more than once: the handler is only added the first time.

    Example:
        >>> setup_logger()
        >>> get_job_logger("3f9a1c2b7d4e").info("Downloading media")
        2026-01-12 10:30:45 | INFO | [3f9a1c2b7d4e] Downloading media
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.addFilter(_DefaultRequestIdFilter())
        logger.addHandler(handler)

    return logger


def get_job_logger(job_id: str, base_logger: Optional[logging.Logger] = None) -> logging.LoggerAdapter:
    """Wrap base_logger (default: the application logger) so every record carries job_id."""
    return logging.LoggerAdapter(base_logger or logging.getLogger(LOGGER_NAME), {"request_id": job_id})
