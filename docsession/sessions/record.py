"""
Session records
===============

On-disk shape of a session and the filters that address it.

    {"_id": "...", "sid": "<session id>", "data": {"cookie": {"_expires": ...}, ...}}

The expiration instant lives inside the payload's cookie metadata; there is
no separate expiry field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

SID_FIELD = "sid"
COOKIE_FIELD = "data.cookie"
EXPIRES_FIELD = f"{COOKIE_FIELD}._expires"


@dataclass
class SessionRecord:
    """A session as persisted: its id and the opaque payload."""

    sid: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {"sid": self.sid, "data": self.data}

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SessionRecord:
        return cls(sid=doc["sid"], data=doc.get("data") or {})


def by_sid(sid: str) -> dict[str, Any]:
    """Filter matching the record for one session id."""
    return {SID_FIELD: sid}


def expired_before(now: datetime) -> dict[str, Any]:
    """Filter matching records whose cookie expired strictly before ``now``."""
    return {EXPIRES_FIELD: {"$lt": now}}
