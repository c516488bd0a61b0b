"""Error taxonomy shared by the blob store, metadata store and CLI."""

from __future__ import annotations


class FileHostError(Exception):
    """Base exception for file hosting errors."""


class IoError(FileHostError):
    """Filesystem create, copy, read or remove failed."""


class StorageUnavailable(FileHostError):
    """Metadata store could not be opened or its schema could not be created."""


class WriteError(FileHostError):
    """Metadata store write failed after a successful open."""


class QueryError(FileHostError):
    """Metadata store read failed after a successful open."""


class NotFound(FileHostError):
    """Source file or blob is absent. Informational, not a failure."""


class InvalidFileName(FileHostError, ValueError):
    """Name is not usable as a single path component."""
