"""
JSON logging for the API process.

Every record goes to stdout as one JSON object. Credentials and the
identity documents suppliers upload for verification (Aadhaar, FSSAI)
never reach the log: matching keys are masked in structured details and
`key=value` fragments are masked in free-text messages.
"""
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from vendorbid.core.config import settings

REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = frozenset({
    "password", "new_password", "current_password", "hashed_password",
    "secret_key", "access_token", "authorization",
    "aadhar_number", "fssai_license",
})

_INLINE_SECRET = re.compile(
    r'(password|secret|token|authorization|aadhar_number|fssai_license)'
    r'[\"\']?\s*[:=]\s*[\"\']?[^\s,;\"\'}{]+',
    re.IGNORECASE,
)

# LogRecord attributes copied into the JSON object when present
CONTEXT_FIELDS = ("user_id", "action", "entity_type", "entity_id")


def redact(value: Any) -> Any:
    """Copy of `value` with sensitive dict keys masked at any depth."""
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in _SENSITIVE_KEYS else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def redact_text(text: str) -> str:
    return _INLINE_SECRET.sub(rf'\1={REDACTED}', text)


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_text(record.getMessage()),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        details = getattr(record, "details", None)
        if details:
            entry["details"] = redact(details)
        if record.exc_info:
            entry["exception"] = redact_text(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


def setup_logging():
    """Install the JSON handler on the root logger once."""
    root_logger = logging.getLogger()
    if any(isinstance(h.formatter, JSONFormatter) for h in root_logger.handlers):
        return

    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for noisy in ("uvicorn.access", "multipart", "passlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class AuditLogger:
    """Mirror of the audit_logs table on the `audit` logger."""

    def __init__(self, name: str = "audit"):
        self.logger = get_logger(name)

    def log(
        self,
        action: str,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        target = f" {entity_type}:{entity_id}" if entity_type and entity_id is not None else ""
        self.logger.info(
            f"{action}{target}",
            extra={
                "user_id": user_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "details": details,
            },
        )


audit_logger = AuditLogger()
