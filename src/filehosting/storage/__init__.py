"""Storage layer for blob files + SQLite metadata."""

from .blobs import BlobStore, blob_name_from_path, validate_blob_name
from .repo import Repository

__all__ = ["BlobStore", "Repository", "blob_name_from_path", "validate_blob_name"]
