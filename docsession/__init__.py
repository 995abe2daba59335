"""
docsession
==========

HTTP session store backed by an embedded, file-based document store.
"""

from docsession.config import StoreConfig, load_config
from docsession.errors import (
    DocSessionError,
    QueryError,
    StoreNotLoadedError,
    StoreUnavailableError,
)
from docsession.sessions import ExpirationSweeper, SessionStore, Store, SweepResult

__version__ = "0.1.0"

__all__ = [
    "SessionStore",
    "Store",
    "ExpirationSweeper",
    "SweepResult",
    "StoreConfig",
    "load_config",
    "DocSessionError",
    "QueryError",
    "StoreNotLoadedError",
    "StoreUnavailableError",
]
