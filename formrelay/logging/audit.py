"""Structured JSON logging for the form relay.

Logs go to stdout as JSON lines so the serverless platform's log
collector can ingest them without parsing rules. Optional file output
via AUDIT_LOG_FILE env var.

Submissions carry helpdesk credentials and uploaded files, so audit
fields are scrubbed before they are written: credential-named keys are
masked and raw bytes are logged as their size only.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from formrelay.config.settings import get_settings

LOGGER_NAME = "formrelay.audit"

REDACTED = "[REDACTED]"
SENSITIVE_KEYS = {"authorization", "api_key", "helpdesk_api_key", "password"}

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
request_method_var: ContextVar[str] = ContextVar("request_method", default="")
request_path_var: ContextVar[str] = ContextVar("request_path", default="")


def scrub(value):
    """Mask credentials and replace byte payloads with their length."""
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [scrub(v) for v in value]
    return value


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        method = request_method_var.get("")
        if method:
            log_entry["method"] = method
            log_entry["path"] = request_path_var.get("")
        # Merge any extra fields passed via `extra={}` kwarg
        if hasattr(record, "audit_data"):
            log_entry.update(scrub(record.audit_data))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    """Configure the audit logger with JSON output."""
    settings = get_settings()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if settings.audit_log_file:
        file_handler = logging.FileHandler(settings.audit_log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate output)
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_request(method: str, path: str) -> str:
    """Start a request-scoped log context and return its request id."""
    rid = generate_request_id()
    request_id_var.set(rid)
    request_method_var.set(method)
    request_path_var.set(path)
    return rid


class RequestTimer:
    """Context manager to measure upstream call latency."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
