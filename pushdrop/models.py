"""
Models for pushdrop.

Immutable dataclasses carried through the upload pipeline.
"""
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, List
from enum import Enum

from .errors import FailureReason


class SourceKind(Enum):
    """Where an upload request originated."""
    FOLDER = "folder"
    CLIPBOARD_FILE = "clipboard_file"
    CLIPBOARD_TEMPORARY = "clipboard_temporary"


@dataclass(frozen=True)
class UploadSource:
    """Origin of a request; ``origin_folder`` is set only for folder uploads."""
    kind: SourceKind
    origin_folder: Optional[Path] = None

    @classmethod
    def folder(cls, origin_folder: Path):
        return cls(kind=SourceKind.FOLDER, origin_folder=Path(origin_folder))

    @classmethod
    def clipboard_file(cls):
        return cls(kind=SourceKind.CLIPBOARD_FILE)

    @classmethod
    def clipboard_temporary(cls):
        return cls(kind=SourceKind.CLIPBOARD_TEMPORARY)


@dataclass(frozen=True)
class UploadItem:
    """A candidate file for a clipboard/drop run."""
    local_path: Path
    should_delete_after_processing: bool = False


@dataclass(frozen=True)
class UploadRequest:
    """Immutable request handed to the uploader."""
    file_local_path: Path
    source: UploadSource
    remote_file_name: Optional[str] = None

    @property
    def effective_name(self) -> str:
        return self.remote_file_name or Path(self.file_local_path).name


@dataclass(frozen=True)
class UploadResponse:
    """What the uploader reports back on success."""
    remote_path: Optional[str] = None
    public_url: Optional[str] = None


@dataclass(frozen=True)
class UploadOutcome:
    """Success(response) or Failure(error) for one item."""
    response: Optional[UploadResponse] = None
    error: Optional[FailureReason] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, response: UploadResponse):
        return cls(response=response)

    @classmethod
    def fail(cls, error: FailureReason):
        return cls(error=error)


@dataclass
class BatchState:
    """Counters for a multi-item clipboard run."""
    success_count: int = 0
    error_count: int = 0
    last_success_name: Optional[str] = None
    last_success_url: Optional[str] = None


@dataclass(frozen=True)
class NotificationMessage:
    """Structured message delivered to the notification sink."""
    title: str
    body: str
    url: Optional[str] = None


@dataclass(frozen=True)
class HistoryEntry:
    """One uploaded file as remembered by the history store."""
    name: str
    url: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "HistoryEntry":
        return cls(
            name=data["name"],
            url=data["url"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class ClipboardSnapshot:
    """
    Contents of the clipboard at the moment of a paste.

    ``file_paths`` holds every file-URL entry (folders and unsupported files
    included); ``data`` maps MIME types to raw payloads.
    """
    file_paths: List[Path] = field(default_factory=list)
    data: Dict[str, bytes] = field(default_factory=dict)

    @property
    def has_file_urls(self) -> bool:
        return bool(self.file_paths)
