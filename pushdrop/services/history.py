"""
HistoryStore - Local JSON store of recently uploaded files.

Keeps the newest entries first and trims to a configurable cap.
"""
import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..models import HistoryEntry
from ..protocols import IHistoryStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DIR = Path.home() / ".cache" / "pushdrop"
DEFAULT_HISTORY_FILE = "history.json"


class HistoryStore(IHistoryStore):
    """
    Upload history persisted as a JSON list.

    The cap is read on every write so a changed preference applies
    to the next append.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        max_entries: Union[int, Callable[[], int]] = 10,
    ):
        """
        Initialize history store.

        Args:
            path: JSON file location (default: ~/.cache/pushdrop/history.json)
            max_entries: Cap, or a callable returning the current cap
        """
        self._path = Path(path) if path else DEFAULT_HISTORY_DIR / DEFAULT_HISTORY_FILE
        self._max_entries = max_entries
        self._entries: List[HistoryEntry] = []
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def cap(self) -> int:
        value = self._max_entries() if callable(self._max_entries) else self._max_entries
        return max(0, int(value))

    def load(self) -> None:
        """Load entries from disk; a missing or broken file starts empty."""
        if not self._path.exists():
            logger.debug("HistoryStore: No history file at %s, starting fresh", self._path)
            self._entries = []
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self._entries = [HistoryEntry.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("HistoryStore: Failed to load %s: %s - starting fresh", self._path, e)
            self._entries = []
        self._trim()

    def append(self, name: str, url: str) -> None:
        self._entries.insert(0, HistoryEntry(name=name, url=url))
        self._trim()
        self._save()

    def all(self) -> List[HistoryEntry]:
        return list(self._entries)

    def _trim(self) -> None:
        cap = self.cap
        if len(self._entries) > cap:
            self._entries = self._entries[:cap]

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            payload = [entry.to_dict() for entry in self._entries]
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("HistoryStore: Failed to save %s: %s", self._path, e)
