"""Local file hosting: blob directory plus SQLite metadata."""

from .config import AppConfig, load_config
from .schemas import FileRecord
from .service import DeleteResult, DownloadResult, DownloadStatus, FileHost, ReconcileReport

__all__ = [
    "AppConfig",
    "DeleteResult",
    "DownloadResult",
    "DownloadStatus",
    "FileHost",
    "FileRecord",
    "ReconcileReport",
    "load_config",
]
