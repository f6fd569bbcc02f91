"""Fakes shared by pushdrop tests."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Set

from pushdrop.errors import WriteFailed
from pushdrop.models import (
    ClipboardSnapshot,
    HistoryEntry,
    NotificationMessage,
    UploadRequest,
    UploadResponse,
)
from pushdrop.protocols import IHistoryStore


class RecordingSink:
    def __init__(self):
        self.messages: List[NotificationMessage] = []

    def post(self, message: NotificationMessage) -> None:
        self.messages.append(message)

    @property
    def titles(self) -> List[str]:
        return [m.title for m in self.messages]


class RecordingIndicator:
    def __init__(self):
        self.states: List[bool] = []

    def set_busy(self, busy: bool) -> None:
        self.states.append(busy)


class MemoryHistory(IHistoryStore):
    def __init__(self):
        self.entries: List[HistoryEntry] = []

    def append(self, name: str, url: str) -> None:
        self.entries.insert(0, HistoryEntry(name=name, url=url))

    def all(self) -> List[HistoryEntry]:
        return list(self.entries)


class FakePrompt:
    def __init__(self, answer: bool = True):
        self.answer = answer
        self.asked: List[str] = []

    def ask_yes_no(self, message: str) -> bool:
        self.asked.append(message)
        return self.answer


class FakeClipboard:
    def __init__(self, snapshot: ClipboardSnapshot):
        self.snapshot = snapshot

    def read(self) -> ClipboardSnapshot:
        return self.snapshot


class FakeUploader:
    """Records requests; fails for local names in ``fail_names``; optional gate."""

    def __init__(self, fail_names: Set[str] = frozenset(), gate: Optional[asyncio.Event] = None,
                 with_url: bool = True):
        self.fail_names = set(fail_names)
        self.gate = gate
        self.with_url = with_url
        self.requests: List[UploadRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.started: Optional[asyncio.Event] = None

    async def upload(self, request: UploadRequest) -> UploadResponse:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.started is not None:
            self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if Path(request.file_local_path).name in self.fail_names:
                raise WriteFailed("connection reset")
            name = request.effective_name
            url = f"https://files.test/{name}" if self.with_url else None
            return UploadResponse(remote_path=f"/remote/{name}", public_url=url)
        finally:
            self.in_flight -= 1

    @property
    def uploaded_names(self) -> List[str]:
        return [Path(r.file_local_path).name for r in self.requests]


class FakeObserver:
    """Stands in for watchdog's Observer; never emits events on its own."""

    def __init__(self, fail_on_start: bool = False):
        self.fail_on_start = fail_on_start
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        if self.fail_on_start:
            raise OSError("inotify watch limit reached")
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


