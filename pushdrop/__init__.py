"""
pushdrop - background agent that uploads files dropped into a folder or copied to the clipboard.

Usage:
    from pushdrop import UploadAgent, AgentConfig, HTTPUploader, HistoryStore

    config = AgentConfig(watched_folder="~/Drop", rename_on_upload=True)
    uploader = HTTPUploader(UploaderSettings(endpoint="https://files.example.com/upload"))

    async with UploadAgent(uploader, sink, indicator, HistoryStore(), prompt, config) as agent:
        agent.start_watching()
        await agent.upload_files([Path("shot.png")])
"""
from .config import AgentConfig, UploaderSettings
from .models import (
    BatchState,
    ClipboardSnapshot,
    HistoryEntry,
    NotificationMessage,
    UploadItem,
    UploadOutcome,
    UploadRequest,
    UploadResponse,
    UploadSource,
    SourceKind,
)
from .naming import remote_name
from .orchestrator import UploadAgent, ClipboardUploadOrchestrator, FolderWatchOrchestrator
from .services import HistoryStore, HTTPUploader

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadAgent",
    "ClipboardUploadOrchestrator",
    "FolderWatchOrchestrator",
    # Config
    "AgentConfig",
    "UploaderSettings",
    # Models
    "BatchState",
    "ClipboardSnapshot",
    "HistoryEntry",
    "NotificationMessage",
    "UploadItem",
    "UploadOutcome",
    "UploadRequest",
    "UploadResponse",
    "UploadSource",
    "SourceKind",
    # Naming
    "remote_name",
    # Services
    "HistoryStore",
    "HTTPUploader",
]
