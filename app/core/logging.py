# app/core/logging.py
import logging
import sys
from datetime import datetime
from typing import Dict, Any
from pythonjsonlogger import jsonlogger

# Fields callers attach through ``extra=``; copied onto the record when present
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "tenant_id",
    "admin_id",
)

SLOW_REQUEST_MS = 1000


class PicWallJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line, with request and tenant context"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        # Flag requests at or over SLOW_REQUEST_MS
        duration = log_record.get("duration_ms")
        if isinstance(duration, (int, float)) and duration >= SLOW_REQUEST_MS:
            log_record["slow"] = True


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``picwall`` logger once; repeated calls reuse its handler"""
    logger = logging.getLogger("picwall")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(PicWallJsonFormatter("%(timestamp)s %(level)s %(logger)s %(message)s"))
        logger.addHandler(handler)

    return logger


logger = setup_logging()
