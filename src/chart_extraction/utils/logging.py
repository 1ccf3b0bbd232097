# ============================================================================
# src/chart_extraction/utils/logging.py
# ============================================================================
"""
Logging utilities for the chart extraction engine.

Modules log through `logging.getLogger(__name__)` and never attach handlers.
A host application opts in to output with `setup_logging()` or
`setup_logging_from_settings()`, which configure only the package logger.
"""

import functools
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "chart_extraction"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the package logger.

    Calling it again replaces the handlers it installed before.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        format_json: Emit one JSON object per line

    Returns:
        The configured package logger
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    if format_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(log_level)

    return package_logger


def setup_logging_from_settings(settings=None) -> logging.Logger:
    """Configure the package logger from LoggingSettings."""
    from ..config.logging_config import logging_settings

    settings = settings or logging_settings
    return setup_logging(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        format_json=settings.LOG_JSON
    )


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the document id when tagged."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        document_id = getattr(record, 'document_id', None)
        if document_id is not None:
            log_data['document_id'] = document_id

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def log_performance(logger: logging.Logger, operation: str):
    """
    Decorator to log how long an operation took.

    Success is logged at INFO; a failure is logged at ERROR and re-raised.

    Args:
        logger: Logger (or adapter) to write to
        operation: Operation name
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error(f"{operation} failed after {duration:.3f}s: {e}")
                raise
            duration = time.perf_counter() - start_time
            logger.info(f"{operation} completed in {duration:.3f}s")
            return result
        return wrapper
    return decorator


class DocumentLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the document id and adds it to the record."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**kwargs.get('extra', {}), **self.extra}

        document_id = self.extra.get('document_id')
        if document_id is not None:
            msg = f"[doc {document_id}] {msg}"

        return msg, kwargs
