"""
Protocols (Interfaces) for the collaborators the orchestrators consume.

Following Interface Segregation Principle - small, focused interfaces.
"""
from abc import ABC, abstractmethod
from typing import List, Protocol, runtime_checkable

from .models import (
    ClipboardSnapshot,
    HistoryEntry,
    NotificationMessage,
    UploadRequest,
    UploadResponse,
)


@runtime_checkable
class IUploader(Protocol):
    """Interface for the transport that moves bytes to the remote host."""

    async def upload(self, request: UploadRequest) -> UploadResponse:
        """Upload a file. Raises ``UploadFailed`` on failure."""
        ...


@runtime_checkable
class INotificationSink(Protocol):
    """Receives synthesized user-facing messages."""

    def post(self, message: NotificationMessage) -> None:
        ...


@runtime_checkable
class IActivityIndicator(Protocol):
    """Receives busy/idle signals."""

    def set_busy(self, busy: bool) -> None:
        ...


@runtime_checkable
class IConfirmationPrompt(Protocol):
    """Synchronous yes/no gate supplied by the UI."""

    def ask_yes_no(self, message: str) -> bool:
        ...


@runtime_checkable
class IClipboardReader(Protocol):
    """Source of clipboard contents."""

    def read(self) -> ClipboardSnapshot:
        ...


class IHistoryStore(ABC):
    """Interface for upload history storage (Repository Pattern)."""

    @abstractmethod
    def append(self, name: str, url: str) -> None:
        """Record an uploaded file."""
        pass

    @abstractmethod
    def all(self) -> List[HistoryEntry]:
        """Entries, most recent first."""
        pass
