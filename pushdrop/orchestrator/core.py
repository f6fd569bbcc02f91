"""Core agent - wires both orchestrators to one uploader, one set of sinks and one config."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..config import ConfigSource, resolve_config
from ..errors import FolderMissing, WatchDescriptorUnavailable
from ..models import BatchState, HistoryEntry, NotificationMessage
from ..protocols import (
    IActivityIndicator,
    IClipboardReader,
    IConfirmationPrompt,
    IHistoryStore,
    INotificationSink,
    IUploader,
)
from .clipboard_upload import ClipboardUploadOrchestrator
from .folder_watch import FolderWatchOrchestrator

logger = logging.getLogger(__name__)

TITLE_WATCH_FAILED = "Monitoring not started"


class UploadAgent:
    """
    Background upload agent.

    Follows:
    - Dependency Injection (sinks, uploader and config injected)
    - Single Responsibility (delegates to orchestrators)

    Usage:
        async with UploadAgent(uploader, sink, indicator, history, prompt, config) as agent:
            agent.start_watching()
            await agent.upload_files([path])
    """

    def __init__(
        self,
        uploader: IUploader,
        notifications: INotificationSink,
        activity: IActivityIndicator,
        history: IHistoryStore,
        prompt: IConfirmationPrompt,
        config: ConfigSource,
        clipboard: Optional[IClipboardReader] = None,
        observer_factory=None,
    ):
        self._uploader = uploader
        self._notifications = notifications
        self._history = history
        self._config = config

        watcher_kwargs = {}
        if observer_factory is not None:
            watcher_kwargs["observer_factory"] = observer_factory
        self._watcher = FolderWatchOrchestrator(
            uploader, notifications, activity, history, config, **watcher_kwargs
        )
        self._clipboard = ClipboardUploadOrchestrator(
            uploader, notifications, activity, history, prompt, config, clipboard=clipboard
        )
        self._entered_uploader = False

    async def __aenter__(self):
        """Enter the uploader's context when it has one."""
        enter = getattr(self._uploader, "__aenter__", None)
        if callable(enter):
            await enter()
            self._entered_uploader = True
        return self

    async def __aexit__(self, *args):
        self._watcher.stop()
        await self._watcher.wait_idle()
        if self._entered_uploader:
            await self._uploader.__aexit__(*args)
            self._entered_uploader = False

    @property
    def watcher(self) -> FolderWatchOrchestrator:
        return self._watcher

    @property
    def clipboard(self) -> ClipboardUploadOrchestrator:
        return self._clipboard

    @property
    def is_watching(self) -> bool:
        return self._watcher.is_running

    def start_watching(self, show_failure: bool = True) -> bool:
        """
        Start the folder watcher.

        Start-up errors are reported once through the notification sink
        (when ``show_failure``) and never raised.
        """
        try:
            self._watcher.start()
        except (FolderMissing, WatchDescriptorUnavailable) as e:
            logger.error("Could not start folder monitoring: %s", e.message)
            if show_failure:
                self._notifications.post(NotificationMessage(title=TITLE_WATCH_FAILED, body=e.message))
            return False
        return True

    def stop_watching(self) -> None:
        self._watcher.stop()

    def toggle_watching(self) -> bool:
        """Flip monitoring; returns whether the watcher now runs."""
        if self._watcher.is_running:
            self._watcher.stop()
            return False
        return self.start_watching(show_failure=True)

    async def upload_files(self, paths: Iterable[Path]) -> Optional[BatchState]:
        return await self._clipboard.upload_files(paths)

    async def upload_from_clipboard(self) -> Optional[BatchState]:
        return await self._clipboard.upload_from_clipboard()

    def history(self) -> List[HistoryEntry]:
        entries = self._history.all()
        cap = resolve_config(self._config).history_max_entries
        return entries[:cap]
