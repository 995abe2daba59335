"""
Exceptions raised by docsession.
"""


class DocSessionError(Exception):
    """Base class for docsession errors."""


class StoreUnavailableError(DocSessionError):
    """The backing file could not be opened or loaded."""


class StoreNotLoadedError(DocSessionError, RuntimeError):
    """An operation was issued before load() or after close()."""


class QueryError(DocSessionError, ValueError):
    """A filter or field path could not be compiled."""
