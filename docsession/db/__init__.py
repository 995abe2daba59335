"""
Embedded document store
=======================

SQLite-backed document collections with mongo-style filters.
"""

from docsession.db.document import DocumentStore
from docsession.db.query import compile_filter

__all__ = ["DocumentStore", "compile_filter"]
