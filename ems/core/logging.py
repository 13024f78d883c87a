import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

# Set by CorrelationIdMiddleware for the lifetime of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib")


class RequestContextFormatter(jsonlogger.JsonFormatter):
    """JSON lines with a UTC timestamp, upper-case level and the current request id."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["level"] = (log_record.get("level") or record.levelname).upper()

        request_id = request_id_var.get()
        if request_id:
            log_record["request_id"] = request_id


def setup_logging(level: Optional[str] = None):
    from ems.core.config import settings

    root = logging.getLogger()
    root.setLevel(level or settings.log_level)

    # Importing the app twice (tests, --reload) must not double every line
    if not any(isinstance(h.formatter, RequestContextFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(RequestContextFormatter("%(timestamp) %(level) %(name) %(message)"))
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
