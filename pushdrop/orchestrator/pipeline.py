"""Steps shared by the clipboard and folder pipelines."""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

from ..config import AgentConfig
from ..errors import MoveFailed, UploadFailed, WriteFailed, describe_exception
from ..models import UploadOutcome, UploadRequest
from ..naming import unique_destination
from ..protocols import IUploader

logger = logging.getLogger(__name__)

TITLE_UPLOADED = "File uploaded"
TITLE_FAILED = "Upload failed"

MB = 1024 * 1024


async def submit_upload(
    uploader: IUploader,
    request: UploadRequest,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> UploadOutcome:
    """
    Run one upload and fold every error into an UploadOutcome.

    Nothing raised by the transport escapes; unexpected exceptions become
    ``WriteFailed``.
    """
    try:
        if semaphore is None:
            response = await uploader.upload(request)
        else:
            async with semaphore:
                response = await uploader.upload(request)
    except UploadFailed as e:
        logger.warning("Upload of %s failed: %s", request.file_local_path, e.message)
        return UploadOutcome.fail(e)
    except Exception as e:
        logger.exception("Uploader raised unexpectedly for %s", request.file_local_path)
        return UploadOutcome.fail(WriteFailed(describe_exception(e)))
    return UploadOutcome.ok(response)


def exceeded_size_mb(size_bytes: int, config: AgentConfig) -> Optional[int]:
    """Rounded size in MB when the limit is enabled and exceeded, else None."""
    if not config.max_file_size_enabled:
        return None
    if size_bytes > config.max_file_size_bytes:
        return int(round(size_bytes / MB))
    return None


def move_into_subfolder(path: Path, destination_dir: Path) -> Path:
    """
    Move ``path`` into ``destination_dir`` (created on demand) under a free name.

    Raises:
        MoveFailed: Directory creation or move failed
    """
    try:
        destination_dir.mkdir(parents=True, exist_ok=True)
        target = unique_destination(path, destination_dir)
        shutil.move(str(path), str(target))
    except OSError as e:
        raise MoveFailed(describe_exception(e)) from e
    logger.info("Moved %s -> %s", path.name, target)
    return target


def move_if_present(path: Path, destination_dir: Path) -> Optional[Path]:
    """Like move_into_subfolder, but a vanished file is not an error."""
    if not path.exists():
        return None
    return move_into_subfolder(path, destination_dir)


def copy_into_folder(path: Path, destination_dir: Path) -> Path:
    """Copy ``path`` into ``destination_dir`` under a free name. Raises OSError."""
    destination_dir.mkdir(parents=True, exist_ok=True)
    target = unique_destination(path, destination_dir)
    shutil.copy2(str(path), str(target))
    return target
