"""Error taxonomy for watcher start-up and per-item failures."""
from typing import Optional


class PushdropError(Exception):
    """Base class for all pushdrop errors."""

    @property
    def message(self) -> str:
        return str(self)


# Watcher-level errors: abort FolderWatchOrchestrator.start()

class FolderMissing(PushdropError):
    """Watched folder path is empty or not an existing directory."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        super().__init__(f"Watched folder is not available: {path or '(not set)'}")


class WatchDescriptorUnavailable(PushdropError):
    """The filesystem observer could not be attached to the folder."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Could not watch folder: {detail}")


# Per-item errors: always converted into a notification

class FailureReason(PushdropError):
    """An item-level failure. Terminal for the item, never retried."""


class FileMissing(FailureReason):
    def __init__(self):
        super().__init__("File is not available for upload.")


class SizeLimitExceeded(FailureReason):
    def __init__(self, limit_mb: int, actual_mb: int):
        self.limit_mb = limit_mb
        self.actual_mb = actual_mb
        super().__init__(
            f"File size {actual_mb} MB exceeds the limit of {limit_mb} MB."
        )


class MetadataReadFailed(FailureReason):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Could not read file attributes: {detail}")


class MoveFailed(FailureReason):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Could not move file: {detail}")


class UploadFailed(FailureReason):
    """Raised by uploaders. Subclasses name the transport stage that failed."""

    prefix = "Upload error"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}" if detail else self.prefix)


class NotConfigured(UploadFailed):
    prefix = "Uploader is not configured"


class UnsupportedAuthMode(UploadFailed):
    prefix = "Authentication mode is not supported"


class FileOpenFailed(UploadFailed):
    prefix = "File is not readable"


class ConnectFailed(UploadFailed):
    prefix = "Could not connect"


class AuthFailed(UploadFailed):
    prefix = "Authentication failed"


class WriteFailed(UploadFailed):
    prefix = "Upload error"


def describe_exception(exc: BaseException) -> str:
    """Human readable detail for an arbitrary exception."""
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"
