"""Structured logging.

Every event is logged with a fixed shape: ``component``, ``event`` and a
``context`` mapping. Console output goes through rich; JSON lines are used
for files and, optionally, the console.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

SENSITIVE_KEYS = ("apikey", "api_key", "token", "secret", "password", "authorization")
REDACTED = "[REDACTED]"


def sanitize(value: Any) -> Any:
    """Redact values stored under secret-looking keys, recursively."""
    if isinstance(value, dict):
        clean = {}
        for key, item in value.items():
            lowered = str(key).lower()
            if any(marker in lowered for marker in SENSITIVE_KEYS):
                clean[key] = REDACTED
            else:
                clean[key] = sanitize(item)
        return clean
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    return value


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in ("component", "event", "context", "duration"):
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        if record.exc_info:
            log_data["error"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name
        json_format: Emit JSON lines on the console instead of rich output
        log_file: Optional path for an additional JSON log file
    """
    handlers = []

    if json_format:
        console_handler: logging.Handler = logging.StreamHandler()
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers.append(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_event(
    logger: logging.Logger,
    level: int,
    component: str,
    event: str,
    error: Optional[BaseException] = None,
    duration: Optional[float] = None,
    **context: Any,
) -> None:
    """Log one structured event."""
    details = sanitize(context)
    extra: Dict[str, Any] = {"component": component, "event": event, "context": details}
    if duration is not None:
        extra["duration"] = round(duration, 3)
    message = f"{component}.{event}"
    if details:
        message += " " + " ".join(f"{k}={v}" for k, v in details.items())
    if error is not None:
        message += f" error={error}"
        extra["context"] = {**details, "error": str(error)}
    logger.log(level, message, extra=extra)
