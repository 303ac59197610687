import json
import logging
from datetime import datetime, timezone

LEDGER_FIELDS = ("donation_id", "account_id", "error_code")
REQUEST_FIELDS = ("method", "path", "status_code", "duration_ms")


def record_extras(record: logging.LogRecord) -> dict:
    """Ledger and request context attached through ``extra=``."""
    return {
        key: record.__dict__[key]
        for key in LEDGER_FIELDS + REQUEST_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(record_extras(record))
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class KeyValueFormatter(logging.Formatter):
    """Plain text line followed by ``key=value`` pairs for any context."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "text"):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else KeyValueFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
