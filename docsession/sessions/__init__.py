"""
Session persistence
===================

Session store, record mapping and the expiration sweeper.
"""

from docsession.sessions.record import SessionRecord, by_sid, expired_before
from docsession.sessions.store import SessionStore, Store
from docsession.sessions.sweeper import ExpirationSweeper, SweepResult

__all__ = [
    "SessionStore",
    "Store",
    "SessionRecord",
    "by_sid",
    "expired_before",
    "ExpirationSweeper",
    "SweepResult",
]
