"""
Logging configuration for the reconciliation tool.

Human-readable console output by default; structured JSON records when
JSON_LOGGING=true.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from src.utils.correlation import run_id_filter

HUMAN_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'
HUMAN_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Extra record attributes copied into JSON output when present
_EXTRA_FIELDS = {
    'legacy_store': 'ttree',
    'columnar_store': 'rntuple',
    'stage': 'stage',
    'duration': 'duration_seconds',
    'findings': 'findings',
}


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with run ID support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'run_id': getattr(record, 'run_id', 'N/A'),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for attribute, key in _EXTRA_FIELDS.items():
            if hasattr(record, attribute):
                log_data[key] = getattr(record, attribute)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def json_logging_enabled(environ=None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get('JSON_LOGGING', 'false').lower() == 'true'


def configure_logging(
    verbose: bool = False,
    json_logs: Optional[bool] = None,
    logger_name: str = 'src'
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: Log at DEBUG instead of INFO
        json_logs: Emit JSON records; defaults to the JSON_LOGGING env var
        logger_name: Logger to configure (the package root by default)

    Returns:
        The configured logger
    """
    if json_logs is None:
        json_logs = json_logging_enabled()

    package_logger = logging.getLogger(logger_name)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.addFilter(run_id_filter)
    if json_logs:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt=HUMAN_DATEFMT))

    package_logger.addHandler(handler)
    package_logger.propagate = False

    return package_logger
