"""Remote file naming and local collision-avoiding destinations."""
import random
import string
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from .errors import MoveFailed

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
DEFAULT_NAME_LENGTH = 15

# Guard only; real directories never get close.
MAX_COLLISION_SUFFIX = 1_000_000

_system_random = random.SystemRandom()


def remote_name(
    path: Path,
    rename_enabled: bool,
    length: int = DEFAULT_NAME_LENGTH,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """
    Pick a randomized remote name for a local file.

    Args:
        path: Local file path (only its extension is used)
        rename_enabled: Rename-on-upload preference
        length: Number of random characters
        rng: Random source; pass a seeded ``random.Random`` for determinism

    Returns:
        ``"{random}.{ext}"``, ``"{random}"`` when the file has no extension,
        or None when renaming is disabled
    """
    if not rename_enabled:
        return None
    chooser = rng or _system_random
    base = "".join(chooser.choice(ALPHABET) for _ in range(length))
    ext = Path(path).suffix
    return f"{base}{ext}" if ext else base


def unique_destination(source: Path, directory: Path) -> Path:
    """
    First free path for ``source``'s name inside ``directory``.

    Tries ``name.ext``, then ``name-1.ext``, ``name-2.ext``, ...
    """
    source = Path(source)
    directory = Path(directory)
    candidate = directory / source.name
    stem = source.stem
    ext = source.suffix
    counter = 1
    while candidate.exists():
        if counter > MAX_COLLISION_SUFFIX:
            raise MoveFailed(f"no free name for {source.name} in {directory}")
        candidate = directory / f"{stem}-{counter}{ext}"
        counter += 1
    return candidate


def fallback_url(name: str, base_url: str) -> Optional[str]:
    """Public URL synthesized from the remote name when the uploader gave none."""
    base = (base_url or "").strip()
    if not base:
        return None
    if not base.endswith("/"):
        base += "/"
    return base + quote(name)
