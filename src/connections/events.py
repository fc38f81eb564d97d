"""Connection issue event envelope and schema enforcement."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from jsonschema import Draft7Validator

INVALID_CONNECTION_DATA = "invalid_connection_data"
CONNECTION_ERROR = "connection_error"

SENSITIVE_KEYS = ("password", "secret", "token", "api_key", "private_key")
REDACTED = "***"

EVENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["event_type", "service", "box_name", "timestamp"],
    "properties": {
        "event_type": {"type": "string", "enum": [INVALID_CONNECTION_DATA, CONNECTION_ERROR]},
        "service": {"type": "string", "minLength": 1},
        "box_name": {"type": "string", "minLength": 1},
        "timestamp": {"type": "string", "format": "date-time"},
        "reason": {"type": "string"},
        "details": {"type": "object"},
        "connection_type": {"type": "string"},
        "error": {"type": "string"},
        "config": {"type": "object"},
    },
    "allOf": [
        {
            "if": {"properties": {"event_type": {"const": INVALID_CONNECTION_DATA}}},
            "then": {"required": ["reason", "details"]},
        },
        {
            "if": {"properties": {"event_type": {"const": CONNECTION_ERROR}}},
            "then": {"required": ["connection_type", "error", "config"]},
        },
    ],
}

_validator = Draft7Validator(EVENT_SCHEMA)


def validate_event(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: e.path)
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"connection event validation failed: {messages}")


def sanitize_config(config: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy config with secret values replaced, nested sections included."""
    sanitized: Dict[str, Any] = {}
    for key, value in (config or {}).items():
        if key in SENSITIVE_KEYS and value is not None:
            sanitized[key] = REDACTED
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_config(value)
        else:
            sanitized[key] = value
    return sanitized


@dataclass
class ConnectionEvent:
    event_type: str
    service: str
    box_name: str
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    connection_type: Optional[str] = None
    error: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def invalid_connection(
        cls, service: str, box_name: str, reason: str, details: Optional[Dict[str, Any]] = None
    ) -> "ConnectionEvent":
        return cls(
            event_type=INVALID_CONNECTION_DATA,
            service=service,
            box_name=box_name,
            reason=reason,
            details=details or {},
        )

    @classmethod
    def connection_error(
        cls,
        service: str,
        box_name: str,
        connection_type: str,
        error: str,
        config: Optional[Mapping[str, Any]] = None,
    ) -> "ConnectionEvent":
        return cls(
            event_type=CONNECTION_ERROR,
            service=service,
            box_name=box_name,
            connection_type=connection_type,
            error=error,
            config=sanitize_config(config),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "event_type": self.event_type,
            "service": self.service,
            "box_name": self.box_name,
        }
        if self.event_type == INVALID_CONNECTION_DATA:
            payload["reason"] = self.reason or ""
            payload["details"] = self.details or {}
        else:
            payload["connection_type"] = self.connection_type or ""
            payload["error"] = self.error or ""
            payload["config"] = self.config or {}
        payload["timestamp"] = self.timestamp
        validate_event(payload)
        return payload
