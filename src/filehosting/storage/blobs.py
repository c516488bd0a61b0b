from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

from filehosting.errors import InvalidFileName, IoError, NotFound

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def validate_blob_name(name: str) -> str:
    """Return ``name`` if it is usable as a single path component."""
    if not name or not name.strip():
        raise InvalidFileName("file name must not be empty")
    if name in {".", ".."}:
        raise InvalidFileName(f"file name is not allowed: {name}")
    if any(char in name for char in _FORBIDDEN_CHARS):
        raise InvalidFileName(f"file name must not contain path separators: {name!r}")
    return name


def blob_name_from_path(path: str | Path) -> str:
    """Derive a blob name from a source path, refusing paths without a file name."""
    name = Path(path).name
    if not name:
        raise InvalidFileName(f"path has no file name component: {path}")
    return validate_blob_name(name)


class BlobStore:
    """Flat directory of blobs keyed by file name."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoError(f"failed to create storage directory {self.directory}: {exc}") from exc
        logger.debug("blob_store ready directory=%s", self.directory)

    def path_for(self, name: str) -> Path:
        return self.directory / validate_blob_name(name)

    def upload(self, source: str | Path | bytes, name: str) -> int:
        """Store ``source`` under ``name`` and return the stored byte count.

        ``source`` is either a path to copy from or the raw bytes. An existing
        blob with the same name is overwritten.
        """
        dest = self.path_for(name)
        try:
            if isinstance(source, bytes):
                dest.write_bytes(source)
            elif dest.exists() and dest.samefile(source):
                logger.debug("blob_store upload name=%s reason=already_in_place", name)
            else:
                shutil.copyfile(source, dest)
            size = dest.stat().st_size
        except OSError as exc:
            raise IoError(f"failed to store blob {name}: {exc}") from exc

        logger.info("blob_store upload name=%s size=%d", name, size)
        return size

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.is_file():
            logger.info("blob_store delete name=%s reason=not_found", name)
            return False

        try:
            path.unlink()
        except OSError as exc:
            raise IoError(f"failed to delete blob {name}: {exc}") from exc
        logger.info("blob_store delete name=%s", name)
        return True

    def copy_to(self, name: str, destination: str | Path) -> Path:
        path = self.path_for(name)
        if not path.is_file():
            raise NotFound(f"blob not found: {name}")

        target = Path(destination)
        if target.is_dir():
            target = target / name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
        except OSError as exc:
            raise IoError(f"failed to copy blob {name} to {target}: {exc}") from exc
        logger.info("blob_store copy name=%s target=%s", name, target)
        return target

    def list_names(self) -> Iterator[str]:
        if not self.directory.is_dir():
            return
        try:
            entries = self.directory.iterdir()
            for entry in entries:
                yield entry.name
        except OSError as exc:
            raise IoError(f"failed to read storage directory {self.directory}: {exc}") from exc
