import json
import logging
import sys
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "topic_key",
    "viewpoint",
    "source_name",
    "url",
    "duration_ms",
    "item_count",
    "error_type",
)


class StructuredFormatter(logging.Formatter):
    """JSON-structured logging formatter for function logs."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Send the package's logs to stderr as JSON lines. Safe to call repeatedly."""
    global _configured
    root = logging.getLogger("trifecta")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    # the platform's root handler would print every record a second time
    root.propagate = False
    _configured = True
