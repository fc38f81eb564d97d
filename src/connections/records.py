"""Tenant connection records, required-section schemas and cache codecs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from jsonschema import Draft7Validator

logger = logging.getLogger(__name__)

BOXNAME_FIELD = "boxname"
DEFAULT_REQUIRED_FIELDS = ("db", "rabbitmq", BOXNAME_FIELD)

# Stored in place of a payload when the upstream confirmed there is nothing.
NEGATIVE_SENTINEL: Dict[str, Any] = {"__confirmed_absent__": True}


def is_negative_sentinel(value: Any) -> bool:
    return isinstance(value, dict) and value.get("__confirmed_absent__") is True


class Absence(Enum):
    """Returned by producers to say "upstream has nothing", as opposed to an error."""
    CONFIRMED = "confirmed_absent"


CONFIRMED_ABSENT = Absence.CONFIRMED


class LookupState(str, Enum):
    HIT = "hit"
    CONFIRMED_ABSENT = "confirmed_absent"
    MISS = "miss"


@dataclass(frozen=True)
class CacheLookup:
    state: LookupState
    value: Optional[Dict[str, Any]] = None

    @property
    def is_hit(self) -> bool:
        return self.state is LookupState.HIT

    @property
    def is_confirmed_absent(self) -> bool:
        return self.state is LookupState.CONFIRMED_ABSENT

    @property
    def is_miss(self) -> bool:
        return self.state is LookupState.MISS


@dataclass(frozen=True)
class TenantConnectionRecord:
    """Connection sections (db, rabbitmq, elasticsearch, ...) for one box."""

    tenant_key: str
    connections: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.tenant_key:
            raise ValueError("tenant_key must be a non-empty string")
        frozen = {name: MappingProxyType(dict(cfg)) for name, cfg in self.connections.items()}
        object.__setattr__(self, "connections", MappingProxyType(frozen))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], tenant_key: Optional[str] = None) -> "TenantConnectionRecord":
        box_name = data.get(BOXNAME_FIELD) or tenant_key
        connections = {
            key: value
            for key, value in data.items()
            if key != BOXNAME_FIELD and isinstance(value, Mapping)
        }
        return cls(tenant_key=box_name, connections=connections)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {BOXNAME_FIELD: self.tenant_key}
        for name, cfg in self.connections.items():
            result[name] = _thaw(cfg)
        return result

    def get_connection_config(self, connection_type: str) -> Optional[Dict[str, Any]]:
        cfg = self.connections.get(connection_type)
        return _thaw(cfg) if cfg is not None else None

    def has_connection(self, connection_type: str) -> bool:
        return connection_type in self.connections

    def all_connections(self) -> Dict[str, Dict[str, Any]]:
        return {name: _thaw(cfg) for name, cfg in self.connections.items()}


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    return value


class RecordSchema:
    """
    Required top-level fields for one deployment.

    The field list is compiled to a draft-7 JSON schema so the same
    definition can be published to the team maintaining the upstream source.
    """

    def __init__(self, required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS):
        self.required_fields = tuple(required_fields)
        self.json_schema: Dict[str, Any] = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "required": list(self.required_fields),
            "properties": {
                BOXNAME_FIELD: {"type": "string", "minLength": 1},
                **{
                    name: {"type": "object"}
                    for name in self.required_fields
                    if name != BOXNAME_FIELD
                },
            },
        }
        self._validator = Draft7Validator(self.json_schema)

    def errors(self, data: Any) -> list[str]:
        return [error.message for error in sorted(self._validator.iter_errors(data), key=lambda e: e.path)]

    def is_valid(self, data: Any) -> bool:
        return self._validator.is_valid(data)

    def build(self, data: Any, tenant_key: Optional[str] = None) -> Optional[TenantConnectionRecord]:
        """Return a record, or None when data does not satisfy the schema."""
        errors = self.errors(data)
        if errors:
            logger.debug("Record rejected for %s: %s", tenant_key, ", ".join(errors))
            return None
        try:
            return TenantConnectionRecord.from_dict(data, tenant_key=tenant_key)
        except ValueError as e:
            logger.debug("Record rejected for %s: %s", tenant_key, e)
            return None


class PlainRecordCodec:
    """Cache payload is the record dict itself."""

    def __init__(self, schema: Optional[RecordSchema] = None):
        self.schema = schema

    def decode(self, raw: Any, tenant_key: Optional[str] = None) -> Optional[TenantConnectionRecord]:
        if self.schema is not None:
            return self.schema.build(raw, tenant_key=tenant_key)
        if not isinstance(raw, Mapping):
            return None
        return TenantConnectionRecord.from_dict(raw, tenant_key=tenant_key)

    def encode(self, record: TenantConnectionRecord) -> Dict[str, Any]:
        return record.to_dict()


class ServiceSectionCodec:
    """
    Cache payload is the full upstream document, keyed by service identity.

    Several services share one box; each reads only its own section.
    """

    def __init__(self, service_key: str, schema: Optional[RecordSchema] = None):
        self.service_key = service_key
        self.schema = schema or RecordSchema()

    def extract(self, raw: Any) -> Optional[Any]:
        if not isinstance(raw, Mapping):
            return None
        return raw.get(self.service_key)

    def decode(self, raw: Any, tenant_key: Optional[str] = None) -> Optional[TenantConnectionRecord]:
        section = self.extract(raw)
        if section is None:
            return None
        return self.schema.build(section, tenant_key=tenant_key)

    def encode(self, record: TenantConnectionRecord) -> Dict[str, Any]:
        return {self.service_key: record.to_dict()}
