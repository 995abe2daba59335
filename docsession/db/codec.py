"""
Document codec
==============

Documents are stored as compact JSON text. ``datetime`` values are tagged as
``{"$$date": <epoch milliseconds>}`` so they survive the round trip and can be
compared numerically inside SQLite. Naive datetimes carry an extra
``"$$naive": true`` and come back naive.

Keys starting with ``$`` are reserved for these tags, so mapping keys from
the caller that start with ``$`` or ``~`` are stored with a ``~`` in front
and restored on decode.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

DATE_KEY = "$$date"
NAIVE_KEY = "$$naive"
ESCAPE = "~"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TAGS = ({DATE_KEY}, {DATE_KEY, NAIVE_KEY})


def to_millis(value: datetime) -> float:
    """Epoch milliseconds for a datetime. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(microseconds=1) / 1000


def from_millis(ms: float) -> datetime:
    return EPOCH + timedelta(microseconds=round(ms * 1000))


def escape_key(key: Any) -> Any:
    if isinstance(key, str) and key.startswith(("$", ESCAPE)):
        return ESCAPE + key
    return key


def _unescape_key(key: str) -> str:
    return key[1:] if key.startswith(ESCAPE) else key


def _prepare(value: Any) -> Any:
    if isinstance(value, datetime):
        tag: dict[str, Any] = {DATE_KEY: to_millis(value)}
        if value.tzinfo is None:
            tag[NAIVE_KEY] = True
        return tag
    if isinstance(value, dict):
        return {escape_key(k): _prepare(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_prepare(v) for v in value]
    return value


def _object_hook(obj: dict[str, Any]) -> Any:
    if set(obj) in _TAGS:
        value = from_millis(obj[DATE_KEY])
        return value.replace(tzinfo=None) if obj.get(NAIVE_KEY) else value
    return {_unescape_key(k): v for k, v in obj.items()}


def encode_value(value: Any) -> str:
    return json.dumps(_prepare(value), separators=(",", ":"))


def encode(document: dict[str, Any]) -> str:
    return encode_value(document)


def decode(text: str) -> dict[str, Any]:
    return json.loads(text, object_hook=_object_hook)
