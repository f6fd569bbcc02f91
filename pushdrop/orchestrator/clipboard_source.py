"""Clipboard candidate extraction - turns a clipboard snapshot into upload items."""
import io
import logging
import mimetypes
import tempfile
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config import AgentConfig
from ..errors import describe_exception
from ..models import ClipboardSnapshot, UploadItem

logger = logging.getLogger(__name__)

IMAGE_TYPES: List[Tuple[str, str]] = [
    ("image/png", "png"),
    ("image/tiff", "tiff"),
    ("image/jpeg", "jpg"),
    ("image/heic", "heic"),
]

# Videos keep their original bytes.
MOVIE_TYPES: List[Tuple[str, str]] = [
    ("video/mp4", "mp4"),
    ("video/quicktime", "mov"),
]


class CandidateStatus(Enum):
    OK = "ok"
    UNSUPPORTED_ONLY = "unsupported_only"
    EMPTY = "empty"
    WRITE_FAILED = "write_failed"


@dataclass
class ClipboardCandidates:
    status: CandidateStatus
    items: List[UploadItem] = field(default_factory=list)
    detail: Optional[str] = None


def is_supported_file(path: Path) -> bool:
    """Images and videos, judged by extension."""
    mimetype, _ = mimetypes.guess_type(Path(path).name.lower())
    if not mimetype:
        return False
    return mimetype.startswith("image/") or mimetype.startswith("video/")


def encode_image(data: bytes, image_format: str, quality: int) -> Tuple[bytes, str]:
    """
    Re-encode raw image bytes per the clipboard format preference.

    Raises:
        UnidentifiedImageError: Data is not a decodable image
        OSError/ValueError: Decoded image could not be re-encoded
    """
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        buffer = io.BytesIO()
        if image_format.lower() in ("jpg", "jpeg"):
            image.convert("RGB").save(buffer, format="JPEG", quality=quality)
            return buffer.getvalue(), "jpg"
        image.save(buffer, format="PNG")
        return buffer.getvalue(), "png"


def write_temporary_file(data: bytes, ext: str, temp_dir: Optional[Path] = None) -> UploadItem:
    """Write clipboard bytes to ``Clipboard-<uuid>.<ext>``; raises OSError."""
    directory = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
    path = directory / f"Clipboard-{uuid.uuid4()}.{ext}"
    path.write_bytes(data)
    logger.debug("Clipboard data written to %s", path)
    return UploadItem(local_path=path, should_delete_after_processing=True)


def _materialize(snapshot: ClipboardSnapshot, config: AgentConfig, temp_dir: Optional[Path]) -> Optional[UploadItem]:
    for mimetype, declared_ext in IMAGE_TYPES:
        data = snapshot.data.get(mimetype)
        if not data:
            continue
        try:
            encoded, ext = encode_image(data, config.clipboard_image_format, config.jpeg_quality)
        except UnidentifiedImageError:
            logger.debug("Clipboard %s payload is not a decodable image", mimetype)
            continue
        except (OSError, ValueError) as e:
            logger.debug("Re-encoding clipboard %s failed (%s), keeping raw bytes", mimetype, e)
            return write_temporary_file(data, declared_ext, temp_dir)
        return write_temporary_file(encoded, ext, temp_dir)

    for mimetype, ext in MOVIE_TYPES:
        data = snapshot.data.get(mimetype)
        if data:
            return write_temporary_file(data, ext, temp_dir)

    return None


def extract_candidates(
    snapshot: ClipboardSnapshot,
    config: AgentConfig,
    temp_dir: Optional[Path] = None,
) -> ClipboardCandidates:
    """
    Pick upload items from a clipboard snapshot.

    File entries win. If file entries exist but none is a supported regular
    file (a folder, say), nothing is synthesized from image data, since that
    data is usually just the folder's icon. Only a clipboard without any file
    entries is materialized into a temporary file.
    """
    items = [
        UploadItem(local_path=Path(p))
        for p in snapshot.file_paths
        if Path(p).is_file() and is_supported_file(Path(p))
    ]
    if items:
        return ClipboardCandidates(status=CandidateStatus.OK, items=items)

    if snapshot.has_file_urls:
        return ClipboardCandidates(status=CandidateStatus.UNSUPPORTED_ONLY)

    try:
        item = _materialize(snapshot, config, temp_dir)
    except OSError as e:
        return ClipboardCandidates(status=CandidateStatus.WRITE_FAILED, detail=describe_exception(e))

    if item is None:
        return ClipboardCandidates(status=CandidateStatus.EMPTY)
    return ClipboardCandidates(status=CandidateStatus.OK, items=[item])
