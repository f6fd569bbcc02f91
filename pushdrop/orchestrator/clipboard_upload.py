"""Clipboard and drop uploads - strictly sequential single or batch runs."""
import asyncio
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from ..config import ConfigSource, UPLOADED_FOLDER_NAME, AgentConfig, resolve_config
from ..errors import (
    FailureReason,
    MetadataReadFailed,
    MoveFailed,
    SizeLimitExceeded,
    describe_exception,
)
from ..models import (
    BatchState,
    NotificationMessage,
    UploadItem,
    UploadRequest,
    UploadSource,
)
from ..naming import fallback_url, remote_name
from ..protocols import (
    IActivityIndicator,
    IClipboardReader,
    IConfirmationPrompt,
    IHistoryStore,
    INotificationSink,
    IUploader,
)
from .clipboard_source import CandidateStatus, extract_candidates
from .pipeline import (
    TITLE_FAILED,
    TITLE_UPLOADED,
    copy_into_folder,
    exceeded_size_mb,
    submit_upload,
)

logger = logging.getLogger(__name__)

TITLE_BATCH_DONE = "Upload finished"

BODY_NOTHING_TO_UPLOAD = "No files to upload."
BODY_UNSUPPORTED_ONLY = "Clipboard contains only folders or unsupported files."
BODY_CLIPBOARD_EMPTY = "Clipboard does not contain any suitable files."


class ClipboardUploadOrchestrator:
    """
    Uploads clipboard contents or an explicit file list, one item at a time.

    A run with one item reports that item directly; a run with several items
    asks for confirmation first and reports a single summary at the end.
    Item ``i+1`` never starts before item ``i`` and its side effects finish.
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
        temp_dir: Optional[Path] = None,
    ):
        """
        Initialize clipboard orchestrator.

        Args:
            uploader: Transport capability
            notifications: Sink for user-facing messages
            activity: Busy/idle indicator
            history: Upload history store
            prompt: Yes/no gate for multi-file runs
            config: AgentConfig or a provider returning the current one
            clipboard: Clipboard reader (required for upload_from_clipboard)
            temp_dir: Where clipboard data is materialized (default: system temp)
        """
        self._uploader = uploader
        self._notifications = notifications
        self._activity = activity
        self._history = history
        self._prompt = prompt
        self._config = config
        self._clipboard = clipboard
        self._temp_dir = temp_dir
        self._run_lock = asyncio.Lock()

    def _current_config(self) -> AgentConfig:
        return resolve_config(self._config)

    def _notify(self, title: str, body: str, url: Optional[str] = None) -> None:
        self._notifications.post(NotificationMessage(title=title, body=body, url=url))

    async def upload_files(self, paths: Iterable[Path]) -> Optional[BatchState]:
        """
        Upload explicit files (a drop onto the app, say).

        Directories and missing paths are skipped silently.

        Returns:
            Final BatchState, or None when nothing ran
        """
        candidates = [Path(p) for p in paths]
        regular = await asyncio.to_thread(lambda: [p for p in candidates if p.is_file()])
        items = [UploadItem(local_path=p) for p in regular]
        if not items:
            self._notify(TITLE_FAILED, BODY_NOTHING_TO_UPLOAD)
            return None
        return await self.upload_items(items)

    async def upload_from_clipboard(self) -> Optional[BatchState]:
        """Upload whatever suitable content the clipboard holds."""
        if self._clipboard is None:
            raise RuntimeError("ClipboardUploadOrchestrator has no clipboard reader")

        snapshot = self._clipboard.read()
        candidates = await asyncio.to_thread(
            extract_candidates, snapshot, self._current_config(), self._temp_dir
        )

        if candidates.status == CandidateStatus.UNSUPPORTED_ONLY:
            self._notify(TITLE_FAILED, BODY_UNSUPPORTED_ONLY)
            return None
        if candidates.status == CandidateStatus.WRITE_FAILED:
            self._notify(TITLE_FAILED, f"Could not create a file from the clipboard: {candidates.detail}")
            return None
        if not candidates.items:
            self._notify(TITLE_FAILED, BODY_CLIPBOARD_EMPTY)
            return None
        return await self.upload_items(candidates.items)

    async def upload_items(self, items: List[UploadItem]) -> Optional[BatchState]:
        """
        Run prepared items: confirm when several, then upload one by one.

        Declining a multi-item run deletes the temporary items.
        """
        is_batch = len(items) > 1
        if is_batch:
            message = f"There are {len(items)} files to upload to the server. Upload them?"
            if not self._prompt.ask_yes_no(message):
                logger.info("Batch of %d files declined", len(items))
                await self._cleanup_all(items)
                return None

        async with self._run_lock:
            state = BatchState()
            self._activity.set_busy(True)
            try:
                for item in items:
                    await self._process(item, is_batch, state)
            finally:
                self._activity.set_busy(False)

            if is_batch:
                self._post_summary(state)
            return state

    async def _process(self, item: UploadItem, is_batch: bool, state: BatchState) -> None:
        config = self._current_config()
        name = remote_name(item.local_path, config.rename_on_upload)
        display_name = name or item.local_path.name

        try:
            try:
                await asyncio.to_thread(self._check_size, item.local_path, config)
            except FailureReason as reason:
                self._record_failure(display_name, reason, is_batch, state)
                return

            source = (
                UploadSource.clipboard_temporary()
                if item.should_delete_after_processing
                else UploadSource.clipboard_file()
            )
            request = UploadRequest(
                file_local_path=item.local_path,
                source=source,
                remote_file_name=name,
            )
            outcome = await submit_upload(self._uploader, request)

            if not outcome.success:
                self._record_failure(display_name, outcome.error, is_batch, state)
                return

            url = outcome.response.public_url or fallback_url(display_name, config.public_base_url)
            logger.info("Uploaded %s -> %s", display_name, url)
            state.success_count += 1
            if is_batch:
                state.last_success_name = display_name
                state.last_success_url = url
            else:
                self._notify(TITLE_UPLOADED, display_name, url)
            if url:
                self._history.append(display_name, url)

            if item.should_delete_after_processing and config.clipboard_save_to_uploaded:
                await asyncio.to_thread(self._archive_copy, item.local_path, config)
        finally:
            await self._cleanup(item)

    @staticmethod
    def _check_size(path: Path, config: AgentConfig) -> None:
        if not config.max_file_size_enabled:
            return
        try:
            size = os.stat(path).st_size
        except OSError as e:
            raise MetadataReadFailed(describe_exception(e)) from e
        actual_mb = exceeded_size_mb(size, config)
        if actual_mb is not None:
            raise SizeLimitExceeded(config.max_file_size_mb, actual_mb)

    def _record_failure(
        self,
        display_name: str,
        reason: FailureReason,
        is_batch: bool,
        state: BatchState,
    ) -> None:
        state.error_count += 1
        logger.warning("Upload of %s failed: %s", display_name, reason.message)
        if not is_batch:
            self._notify(TITLE_FAILED, f"{display_name}: {reason.message}")

    def _post_summary(self, state: BatchState) -> None:
        if state.success_count > 0 and state.last_success_name:
            self._notify(
                f"Uploaded {state.success_count} files",
                f"Errors: {state.error_count}\nLast uploaded:\n{state.last_success_name}",
                state.last_success_url,
            )
        else:
            self._notify(
                TITLE_BATCH_DONE,
                f"Succeeded: 0, Errors: {state.error_count}",
            )

    @staticmethod
    def _archive_copy(path: Path, config: AgentConfig) -> None:
        """Best-effort copy of an uploaded clipboard file into an Uploaded folder."""
        watched = Path(config.watched_folder).expanduser() if config.watched_folder else None
        base = watched if watched is not None and watched.is_dir() else Path(config.archive_fallback_dir)
        try:
            target = copy_into_folder(path, base / UPLOADED_FOLDER_NAME)
            logger.debug("Archived clipboard upload to %s", target)
        except (OSError, MoveFailed) as e:
            logger.debug("Archive copy of %s skipped: %s", path, e)

    async def _cleanup(self, item: UploadItem) -> None:
        if not item.should_delete_after_processing:
            return
        try:
            await asyncio.to_thread(item.local_path.unlink, True)
        except OSError as e:
            logger.debug("Could not delete temporary file %s: %s", item.local_path, e)

    async def _cleanup_all(self, items: List[UploadItem]) -> None:
        for item in items:
            await self._cleanup(item)
