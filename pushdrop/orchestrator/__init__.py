"""Orchestrator package - coordinates clipboard and folder upload workflows."""
from .core import UploadAgent
from .clipboard_upload import ClipboardUploadOrchestrator
from .folder_watch import FolderWatchOrchestrator

__all__ = ["UploadAgent", "ClipboardUploadOrchestrator", "FolderWatchOrchestrator"]
