"""Helpers for turning calculator records into plain dicts and back.

Reference data and saved work use camelCase keys (the shape the web tools
exchange), while the dataclasses use snake_case. ``record_from_dict`` accepts
either spelling and ignores keys the dataclass does not declare; callers that
take user input check ``unknown_keys`` first.
"""

import re
from dataclasses import asdict, fields, is_dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Type, TypeVar

T = TypeVar('T')

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def to_snake(key: str) -> str:
    """Convert ``fiscalYearEnd`` to ``fiscal_year_end``. Snake keys pass through."""
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


def normalise_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_snake(k): v for k, v in (data or {}).items()}


def unknown_keys(cls: Type[T], data: Dict[str, Any]) -> List[str]:
    """Keys of ``data`` that do not name a field of ``cls``, in their original spelling."""
    known = {f.name for f in fields(cls)}
    return [k for k in (data or {}) if to_snake(k) not in known]


def record_from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Build a flat dataclass from a dict, dropping unknown keys."""
    known = {f.name for f in fields(cls)}
    values = {k: v for k, v in normalise_keys(data).items() if k in known}
    return cls(**values)


def record_to_dict(record: Any) -> Dict[str, Any]:
    if record is None:
        return None
    if not is_dataclass(record):
        raise TypeError(f"Expected a dataclass record, got {type(record).__name__}")
    return asdict(record)


def to_plain(value: Any) -> Any:
    """Recursively convert records, dates and tuples into JSON-ready values."""
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
