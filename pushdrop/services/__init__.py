"""Concrete collaborators: history storage and the HTTP uploader."""
from .history import HistoryStore
from .http_uploader import HTTPUploader

__all__ = [
    "HistoryStore",
    "HTTPUploader",
]
