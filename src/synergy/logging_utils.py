"""Structured logging helpers for synergy."""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .constants import APP_NAME

# Preferred key order per event; remaining keys follow alphabetically.
EVENT_KEY_ORDER: dict[str, list[str]] = {
    # Persistence
    "snapshot_loaded": ["ts", "level", "storage", "users", "projects", "tasks"],
    "snapshot_corrupt": ["ts", "level", "storage", "error_type", "error"],
    "snapshot_saved": ["ts", "level", "storage"],
    # Users and session
    "user_created": ["ts", "level", "user_id"],
    "session_signed_in": ["ts", "level", "user_id"],
    "session_signed_out": ["ts", "level"],
    # Projects and tasks
    "project_created": ["ts", "level", "project_id", "owner_id"],
    "member_added": ["ts", "level", "project_id", "user_id"],
    "task_created": ["ts", "level", "task_id", "project_id", "assignee_id"],
    "task_status_changed": ["ts", "level", "task_id", "old_status", "new_status"],
    "task_deleted": ["ts", "level", "task_id", "project_id"],
    "assignee_not_member": ["ts", "level", "project_id", "assignee_id"],
    # Messages, notifications, settings
    "message_posted": ["ts", "level", "message_id", "project_id", "parent_id"],
    "notification_created": ["ts", "level", "notification_id", "user_id"],
    "notification_read": ["ts", "level", "notification_id"],
    "settings_updated": ["ts", "level", "notifications_enabled"],
    # Auth service
    "auth_request": ["ts", "level", "operation", "http_status", "elapsed_ms"],
    "auth_request_failed": ["ts", "level", "operation", "error_type", "error"],
}

DEFAULT_EVENT_KEY_ORDER = ["ts", "level"]


def sanitize_error_message(error_msg: str) -> str:
    """Redact bearer tokens and JWT-shaped strings from error text."""
    sanitized = re.sub(
        r"Bearer\s+[A-Za-z0-9_\-\.]{20,}",
        "Bearer [REDACTED_TOKEN]",
        error_msg,
    )
    sanitized = re.sub(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        "[REDACTED_JWT]",
        sanitized,
    )
    return sanitized


def _to_log_safe(value: Any) -> Any:
    """Convert values to JSON-serializable, log-safe representations."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _to_log_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_log_safe(v) for v in value]
    return str(value)


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured log event."""
    payload = {
        "ts": datetime.now().astimezone().isoformat(),
        "event": event,
    }
    for key, value in fields.items():
        if key == "error" and isinstance(value, str):
            value = sanitize_error_message(value)
        payload[key] = _to_log_safe(value)
    logging.getLogger(APP_NAME).log(
        level, json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    )


def _one_line(value: Any) -> str:
    return str(value).replace("\n", "\\n")


class StructuredTextFormatter(logging.Formatter):
    """Render ``log_event`` records as ``=== event ===`` blocks of ``key: value`` lines.

    Records whose message is not a JSON object (third-party loggers) are
    shown under the logger name with the raw text as ``message``.
    Blocks after the first are separated by a blank line.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._emitted = False

    @staticmethod
    def _parse_event(record: logging.LogRecord) -> tuple[str, dict[str, Any]]:
        message = record.getMessage()
        if message.startswith("{"):
            try:
                payload = json.loads(message)
            except ValueError:
                payload = None
            if isinstance(payload, dict) and "event" in payload:
                event = str(payload.pop("event"))
                return event, payload
        return record.name, {"message": message}

    @staticmethod
    def _ordered_keys(event: str, data: dict[str, Any]) -> list[str]:
        preferred = EVENT_KEY_ORDER.get(event, DEFAULT_EVENT_KEY_ORDER)
        present = [k for k in data if data[k] is not None]
        head = [k for k in preferred if k in present]
        return head + sorted(k for k in present if k not in preferred)

    def format(self, record: logging.LogRecord) -> str:
        event, payload = self._parse_event(record)
        data: dict[str, Any] = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **payload,
        }

        lines = [f"=== {event} ==="]
        lines.extend(
            f"{key}: {_one_line(data[key])}"
            for key in self._ordered_keys(event, data)
        )
        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        block = "\n".join(lines)
        if self._emitted:
            block = "\n" + block
        self._emitted = True
        return block


def setup_logging(log_file: Optional[str] = None) -> None:
    """Set up logging configuration."""
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_path), encoding="utf-8")
        handler.setFormatter(StructuredTextFormatter())
        logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
    else:
        logging.disable(logging.CRITICAL)
