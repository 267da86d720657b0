"""
Logging setup for the reconciliation tool.

Human-readable console output by default; JSON lines when JSON_LOGGING=true.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from src.utils.correlation import CorrelationIdFilter

# LogRecord attributes copied into JSON output when passed via extra=
EXTRA_FIELDS = {
    "pair_id": "pair_id",
    "table": "table",
    "source": "source",
    "duration": "duration_seconds",
    "counts": "counts",
}


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with correlation ID support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', 'N/A'),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for attr, key in EXTRA_FIELDS.items():
            if hasattr(record, attr):
                log_data[key] = getattr(record, attr)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    verbose: bool = False,
    json_logs: Optional[bool] = None,
    logger_name: str = "src"
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: DEBUG level instead of INFO
        json_logs: Emit JSON lines; defaults to the JSON_LOGGING env var
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    if json_logs is None:
        json_logs = os.getenv('JSON_LOGGING', 'false').lower() == 'true'

    handler = logging.StreamHandler(sys.stderr)
    if json_logs:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(correlation_id)s] %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    handler.addFilter(CorrelationIdFilter())

    logger = logging.getLogger(logger_name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    return logger
