"""Folder watcher - debounced, de-duplicated uploads of files dropped into a folder."""
import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import (
    ConfigSource,
    ERROR_FOLDER_NAME,
    UPLOADED_FOLDER_NAME,
    AgentConfig,
    resolve_config,
)
from ..errors import (
    FailureReason,
    FileMissing,
    FolderMissing,
    MetadataReadFailed,
    MoveFailed,
    SizeLimitExceeded,
    WatchDescriptorUnavailable,
    describe_exception,
)
from ..models import NotificationMessage, UploadRequest, UploadResponse, UploadSource
from ..naming import fallback_url, remote_name
from ..protocols import IActivityIndicator, IHistoryStore, INotificationSink, IUploader
from .pipeline import (
    TITLE_FAILED,
    TITLE_UPLOADED,
    exceeded_size_mb,
    move_if_present,
    move_into_subfolder,
    submit_upload,
)

logger = logging.getLogger(__name__)

TITLE_FOLDER_ERROR = "Folder error"

IGNORED_EVENT_TYPES = {"opened", "closed_no_write"}


class _FolderEventHandler(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread onto the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], None]):
        self._loop = loop
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in IGNORED_EVENT_TYPES:
            return
        try:
            self._loop.call_soon_threadsafe(self._callback)
        except RuntimeError:
            # Loop already closed; the watcher is gone.
            pass


def _list_entries(folder: Path) -> List[Path]:
    return sorted(
        entry for entry in folder.iterdir()
        if not entry.name.startswith(".")
    )


def _stat_entry(path: Path) -> os.stat_result:
    return os.stat(path)


class FolderWatchOrchestrator:
    """
    Watches one directory (non-recursive) and uploads files that appear in it.

    Every filesystem event triggers a full re-scan; each entry is scheduled
    once after a settle delay and is ignored until its upload and its move
    into ``Uploaded/`` or ``Error/`` have finished.
    Uploaded files go to ``Uploaded/``, failed ones to ``Error/``.

    All bookkeeping lives on the event loop that called ``start()``; stat,
    move and upload work is awaited off it and re-enters it on completion.

    Usage:
        watcher = FolderWatchOrchestrator(uploader, sink, indicator, history, config)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        uploader: IUploader,
        notifications: INotificationSink,
        activity: IActivityIndicator,
        history: Optional[IHistoryStore],
        config: ConfigSource,
        observer_factory: Callable[[], object] = Observer,
    ):
        self._uploader = uploader
        self._notifications = notifications
        self._activity = activity
        self._history = history
        self._config = config
        self._observer_factory = observer_factory

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer = None
        self._folder: Optional[Path] = None
        self._generation = 0
        self._semaphore: Optional[asyncio.Semaphore] = None

        self._pending: Set[str] = set()
        self._active: Set[str] = set()
        self._remote_names: Dict[str, str] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

        # Scan sequence numbers. A path released at counter N is skipped by
        # scans numbered <= N, whose listing may predate its move.
        self._scan_counter = 0
        self._scans_in_flight: Set[int] = set()
        self._released: Dict[str, int] = {}

    @property
    def is_running(self) -> bool:
        return self._folder is not None

    @property
    def watched_folder(self) -> Optional[Path]:
        return self._folder

    @property
    def pending_paths(self) -> Set[str]:
        return set(self._pending)

    @property
    def active_upload_paths(self) -> Set[str]:
        return set(self._active)

    def _current_config(self) -> AgentConfig:
        return resolve_config(self._config)

    # Lifecycle

    def start(self) -> None:
        """
        Start watching the configured folder. Must be called from the event loop.

        Raises:
            FolderMissing: Folder path empty or not a directory
            WatchDescriptorUnavailable: Observer could not be attached
        """
        if self.is_running:
            return

        config = self._current_config()
        if not config.watched_folder:
            raise FolderMissing(None)
        folder = Path(config.watched_folder).expanduser()
        if not folder.is_dir():
            raise FolderMissing(str(folder))

        loop = asyncio.get_running_loop()
        handler = _FolderEventHandler(loop, self._on_folder_event)
        observer = self._observer_factory()
        try:
            observer.schedule(handler, str(folder), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchDescriptorUnavailable(describe_exception(e)) from e

        self._loop = loop
        self._observer = observer
        self._folder = folder
        self._generation += 1
        limit = config.max_concurrent_uploads
        self._semaphore = asyncio.Semaphore(limit) if limit else None
        logger.info("Watching %s", folder)

        self._track(self._scan(initial=True, generation=self._generation))

    def stop(self) -> None:
        """
        Stop watching and drop pending work.

        Uploads already submitted keep running; their completions find the
        watcher stopped and skip the local file moves.
        """
        observer = self._observer
        self._observer = None
        if self._folder is not None:
            logger.info("Stopped watching %s", self._folder)
        self._folder = None
        self._generation += 1

        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._pending.clear()
        self._active.clear()
        self._remote_names.clear()
        self._scans_in_flight.clear()
        self._released.clear()

        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
        self._activity.set_busy(False)

    async def rescan(self) -> None:
        """Scan the folder now, as a filesystem event would."""
        if self.is_running:
            await self._scan(initial=False, generation=self._generation)

    async def wait_idle(self) -> None:
        """Wait until nothing is pending and every tracked task has finished."""
        while self._pending or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(0.01)

    # Scanning and scheduling

    def _on_folder_event(self) -> None:
        if self.is_running:
            self._track(self._scan(initial=False, generation=self._generation))

    async def _scan(self, initial: bool, generation: int) -> None:
        folder = self._folder
        if folder is None or generation != self._generation:
            return
        self._scan_counter += 1
        seq = self._scan_counter
        self._scans_in_flight.add(seq)
        try:
            try:
                entries = await asyncio.to_thread(_list_entries, folder)
            except OSError as e:
                logger.error("Scanning %s failed: %s", folder, e)
                self._notify(TITLE_FOLDER_ERROR, f"Could not scan {folder}: {describe_exception(e)}")
                return
            if generation != self._generation:
                return
            for entry in entries:
                self._schedule(entry, initial, generation, seq)
        finally:
            self._scans_in_flight.discard(seq)
            self._forget_released()

    def _schedule(self, path: Path, initial: bool, generation: int, seq: int) -> None:
        key = str(path)
        if key in self._pending or key in self._active:
            return
        released_at = self._released.get(key)
        if released_at is not None and seq <= released_at:
            logger.debug("Skipping %s from a listing taken before it was released", path.name)
            return
        config = self._current_config()
        delay = config.initial_settle_delay if initial else config.settle_delay
        self._pending.add(key)
        self._timers[key] = self._loop.call_later(delay, self._dispatch, path, generation)
        logger.debug("Scheduled %s in %.2fs", path.name, delay)

    def _dispatch(self, path: Path, generation: int) -> None:
        self._timers.pop(str(path), None)
        self._track(self._process_file(path, generation))

    # Processing

    async def _process_file(self, path: Path, generation: int) -> None:
        key = str(path)
        config = self._current_config()

        try:
            info = await asyncio.to_thread(_stat_entry, path)
        except FileNotFoundError:
            info = None
            reason: Optional[FailureReason] = FileMissing()
        except OSError as e:
            info = None
            reason = MetadataReadFailed(describe_exception(e))

        if generation != self._generation:
            return

        if info is not None and stat.S_ISDIR(info.st_mode):
            self._release(key, generation)
            return

        if info is None:
            failure = reason
        else:
            actual_mb = exceeded_size_mb(info.st_size, config)
            if actual_mb is None:
                self._start_upload(path, config, generation)
                return
            failure = SizeLimitExceeded(config.max_file_size_mb, actual_mb)

        # The path stays pending until its Error/ move is done.
        try:
            await self._handle_failure(path, failure, generation)
        finally:
            self._release(key, generation)

    def _start_upload(self, path: Path, config: AgentConfig, generation: int) -> None:
        key = str(path)
        name = remote_name(path, config.rename_on_upload)
        self._pending.discard(key)
        self._active.add(key)
        if name:
            self._remote_names[key] = name
        else:
            self._remote_names.pop(key, None)
        self._update_activity()

        request = UploadRequest(
            file_local_path=path,
            source=UploadSource.folder(self._folder),
            remote_file_name=name,
        )
        logger.info("Uploading %s as %s", path.name, request.effective_name)
        self._track(self._run_upload(path, request, generation))

    async def _run_upload(self, path: Path, request: UploadRequest, generation: int) -> None:
        outcome = await submit_upload(self._uploader, request, self._semaphore)

        key = str(path)
        if generation == self._generation:
            applied_name = self._remote_names.get(key, path.name)
        else:
            applied_name = request.effective_name

        # The path stays active until its Uploaded/ or Error/ move is done.
        try:
            if outcome.success:
                await self._handle_success(path, applied_name, outcome.response, generation)
            else:
                await self._handle_failure(path, outcome.error, generation, applied_name)
        finally:
            self._release(key, generation)

    def _release(self, key: str, generation: int) -> None:
        """Hand a finished path back to the scanner."""
        if generation != self._generation:
            return
        self._pending.discard(key)
        self._remote_names.pop(key, None)
        self._released[key] = self._scan_counter
        if key in self._active:
            self._active.discard(key)
            self._update_activity()

    def _forget_released(self) -> None:
        if not self._scans_in_flight:
            self._released.clear()
            return
        oldest = min(self._scans_in_flight)
        for key, released_at in list(self._released.items()):
            if released_at < oldest:
                del self._released[key]

    async def _handle_success(
        self,
        path: Path,
        applied_name: str,
        response: UploadResponse,
        generation: int,
    ) -> None:
        folder = self._folder_for(generation)
        if folder is not None:
            try:
                await asyncio.to_thread(move_into_subfolder, path, folder / UPLOADED_FOLDER_NAME)
            except MoveFailed as e:
                await self._handle_failure(path, e, generation, applied_name)
                return
        else:
            logger.debug("Watcher stopped; leaving %s in place", path)

        config = self._current_config()
        url = response.public_url or fallback_url(applied_name, config.public_base_url)
        self._notify(TITLE_UPLOADED, applied_name, url)
        if url and self._history is not None:
            self._history.append(applied_name, url)

    async def _handle_failure(
        self,
        path: Path,
        reason: FailureReason,
        generation: int,
        applied_name: Optional[str] = None,
    ) -> None:
        folder = self._folder_for(generation)
        if folder is not None:
            try:
                await asyncio.to_thread(move_if_present, path, folder / ERROR_FOLDER_NAME)
            except MoveFailed as e:
                logger.warning("Could not move %s to %s/: %s", path.name, ERROR_FOLDER_NAME, e.message)

        display_name = applied_name or path.name
        logger.warning("Upload of %s failed: %s", display_name, reason.message)
        self._notify(TITLE_FAILED, f"{display_name}: {reason.message}")

    # Helpers

    def _folder_for(self, generation: int) -> Optional[Path]:
        if generation != self._generation:
            return None
        return self._folder

    def _notify(self, title: str, body: str, url: Optional[str] = None) -> None:
        self._notifications.post(NotificationMessage(title=title, body=body, url=url))

    def _update_activity(self) -> None:
        self._activity.set_busy(bool(self._active))

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Folder watcher task failed", exc_info=task.exception())
