from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from filehosting.errors import QueryError, StorageUnavailable, WriteError
from filehosting.schemas import SQLITE_INT_MAX, SQLITE_INT_MIN, FileRecord

logger = logging.getLogger(__name__)

_LIKE_ESCAPE = "\\"
_SELECT_COLUMNS = "SELECT id, filename, size, uploaded_at FROM files"


class Repository:
    """SQLite-backed store of ``FileRecord`` rows."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._init_schema()

    def insert(self, filename: str, size: int) -> FileRecord:
        uploaded_at = int(time.time())
        query = "INSERT INTO files (filename, size, uploaded_at) VALUES (?, ?, ?)"
        try:
            with self._connect() as conn:
                cursor = conn.execute(query, (filename, size, uploaded_at))
                row_id = cursor.lastrowid
        except sqlite3.Error as exc:
            raise WriteError(f"failed to insert metadata for {filename}: {exc}") from exc

        logger.info(
            "metadata insert id=%s filename=%s size=%d uploaded_at=%d",
            row_id,
            filename,
            size,
            uploaded_at,
        )
        return FileRecord(id=row_id, filename=filename, size=size, uploaded_at=uploaded_at)

    def list_all(self) -> list[FileRecord]:
        return self._select(f"{_SELECT_COLUMNS} ORDER BY id ASC")

    def get_by_filename(self, name: str) -> list[FileRecord]:
        return self._select(f"{_SELECT_COLUMNS} WHERE filename = ? ORDER BY id ASC", (name,))

    def count(self) -> int:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT COUNT(*) FROM files").fetchone()
        except sqlite3.Error as exc:
            raise QueryError(f"failed to count metadata rows: {exc}") from exc
        return int(row[0])

    def delete_by_filename(self, name: str) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM files WHERE filename = ?", (name,))
                removed = cursor.rowcount
        except sqlite3.Error as exc:
            raise WriteError(f"failed to delete metadata for {name}: {exc}") from exc

        logger.info("metadata delete filename=%s removed=%d", name, removed)
        return removed

    def search_by_name(self, substring: str) -> list[FileRecord]:
        # LIKE ignores ASCII case, instr() restores case-sensitive matching.
        query = f"""
        {_SELECT_COLUMNS}
        WHERE filename LIKE ? ESCAPE '{_LIKE_ESCAPE}'
          AND instr(filename, ?) > 0
        ORDER BY id ASC
        """
        pattern = f"%{_escape_like(substring)}%"
        return self._select(query, (pattern, substring))

    def search_by_date_range(self, start: int, end: int) -> list[FileRecord]:
        for bound in (start, end):
            if not SQLITE_INT_MIN <= bound <= SQLITE_INT_MAX:
                raise QueryError(f"timestamp out of range: {bound}")
        if start > end:
            return []
        query = f"""
        {_SELECT_COLUMNS}
        WHERE uploaded_at BETWEEN ? AND ?
        ORDER BY uploaded_at ASC, id ASC
        """
        return self._select(query, (int(start), int(end)))

    def _select(self, query: str, params: tuple[object, ...] = ()) -> list[FileRecord]:
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise QueryError(f"metadata query failed: {exc}") from exc

        records: list[FileRecord] = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except ValidationError as exc:
                logger.warning(
                    "metadata row skipped id=%s errors=%d",
                    row["id"],
                    exc.error_count(),
                )
        return records

    def _init_schema(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        try:
            schema = schema_path.read_text(encoding="utf-8")
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn:
                conn.executescript(schema)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(
                f"failed to open metadata store {self.db_path}: {exc}"
            ) from exc
        logger.debug("metadata store ready db_path=%s", self.db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            id=row["id"],
            filename=row["filename"],
            size=row["size"],
            uploaded_at=row["uploaded_at"],
        )


def _escape_like(value: str) -> str:
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", f"{_LIKE_ESCAPE}%")
        .replace("_", f"{_LIKE_ESCAPE}_")
    )
