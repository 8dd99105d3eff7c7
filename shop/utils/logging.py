"""
Structured JSON log formatter.
"""
import json
import logging
from datetime import datetime, timezone


EXTRA_FIELDS = (
    "request_id",
    "method",
    "path",
    "operation",
    "status",
    "duration_ms",
    "order_id",
    "product_id",
    "error",
    "error_code",
    "idempotency_key",
    "payload",
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
