from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from filehosting.config import AppConfig
from filehosting.errors import NotFound
from filehosting.schemas import FileRecord
from filehosting.storage import BlobStore, Repository, blob_name_from_path, validate_blob_name

logger = logging.getLogger(__name__)


class DownloadStatus(StrEnum):
    FOUND = "found"
    MISSING = "missing"
    UNTRACKED = "untracked"
    DANGLING = "dangling"


@dataclass(slots=True, frozen=True)
class DownloadResult:
    name: str
    status: DownloadStatus
    path: Path
    records: list[FileRecord] = field(default_factory=list)
    copied_to: Path | None = None

    @property
    def blob_present(self) -> bool:
        return self.status in {DownloadStatus.FOUND, DownloadStatus.UNTRACKED}


@dataclass(slots=True, frozen=True)
class DeleteResult:
    name: str
    blob_removed: bool
    records_removed: int


@dataclass(slots=True, frozen=True)
class ReconcileReport:
    untracked: list[str]
    dangling: list[str]
    duplicates: dict[str, int]
    blob_count: int
    record_count: int

    @property
    def is_consistent(self) -> bool:
        return not self.untracked and not self.dangling


class FileHost:
    """Blob store and metadata store used together.

    Writes are not atomic across the two stores: the blob is written first and
    the metadata row second, so a failed insert leaves an untracked blob that
    ``reconcile`` reports.
    """

    def __init__(self, *, blobs: BlobStore, repo: Repository) -> None:
        self.blobs = blobs
        self.repo = repo

    @classmethod
    def open(cls, config: AppConfig) -> FileHost:
        blobs = BlobStore(config.storage.files_dir)
        blobs.ensure_directory()
        repo = Repository(config.storage.db_path)
        return cls(blobs=blobs, repo=repo)

    def upload(self, source_path: str | Path, name: str | None = None) -> FileRecord:
        source = Path(source_path)
        if not source.is_file():
            raise NotFound(f"source file does not exist: {source}")

        blob_name = validate_blob_name(name) if name is not None else blob_name_from_path(source)
        size = self.blobs.upload(source, blob_name)
        return self.repo.insert(blob_name, size)

    def upload_bytes(self, data: bytes, name: str) -> FileRecord:
        size = self.blobs.upload(data, name)
        return self.repo.insert(name, size)

    def download(self, name: str, destination: str | Path | None = None) -> DownloadResult:
        path = self.blobs.path_for(name)
        blob_present = self.blobs.exists(name)
        records = self.repo.get_by_filename(name)

        if blob_present and records:
            status = DownloadStatus.FOUND
        elif blob_present:
            status = DownloadStatus.UNTRACKED
        elif records:
            status = DownloadStatus.DANGLING
        else:
            status = DownloadStatus.MISSING

        copied_to = None
        if destination is not None and blob_present:
            copied_to = self.blobs.copy_to(name, destination)

        logger.info("download name=%s status=%s records=%d", name, status, len(records))
        return DownloadResult(
            name=name,
            status=status,
            path=path,
            records=records,
            copied_to=copied_to,
        )

    def delete(self, name: str) -> DeleteResult:
        blob_removed = self.blobs.delete(name)
        records_removed = self.repo.delete_by_filename(name)
        return DeleteResult(name=name, blob_removed=blob_removed, records_removed=records_removed)

    def list_names(self) -> Iterator[str]:
        return self.blobs.list_names()

    def records(self) -> list[FileRecord]:
        return self.repo.list_all()

    def search_by_name(self, substring: str) -> list[FileRecord]:
        return self.repo.search_by_name(substring)

    def search_by_date_range(self, start: int, end: int) -> list[FileRecord]:
        return self.repo.search_by_date_range(start, end)

    def reconcile(self) -> ReconcileReport:
        blob_names = set(self.blobs.list_names())
        name_counts = Counter(record.filename for record in self.repo.list_all())
        record_names = set(name_counts)

        report = ReconcileReport(
            untracked=sorted(blob_names - record_names),
            dangling=sorted(record_names - blob_names),
            duplicates={name: count for name, count in sorted(name_counts.items()) if count > 1},
            blob_count=len(blob_names),
            record_count=sum(name_counts.values()),
        )
        logger.info(
            "reconcile blobs=%d records=%d untracked=%d dangling=%d duplicates=%d",
            report.blob_count,
            report.record_count,
            len(report.untracked),
            len(report.dangling),
            len(report.duplicates),
        )
        return report
