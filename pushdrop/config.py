"""
Configuration for the upload agent.

Immutable dataclasses; defaults mirror the desktop application's preferences.
Orchestrators accept either a config instance or a zero-argument provider and
re-read it on every operation, so a settings layer can swap values at runtime.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Union


DEFAULT_PUBLIC_BASE_URL = "https://example.com/uploads/"
DEFAULT_ARCHIVE_DIR = Path.home() / "Documents" / "pushdrop"

UPLOADED_FOLDER_NAME = "Uploaded"
ERROR_FOLDER_NAME = "Error"

ENV_PREFIX = "PUSHDROP_"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(value: Optional[str], default: Optional[int]) -> Optional[int]:
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


@dataclass(frozen=True)
class AgentConfig:
    """Immutable configuration consumed by both orchestrators."""
    watched_folder: str = ""
    rename_on_upload: bool = False
    max_file_size_enabled: bool = False
    max_file_size_mb: int = 200
    clipboard_image_format: str = "png"  # "png" or "jpg"
    clipboard_jpeg_quality: int = 80
    clipboard_save_to_uploaded: bool = False
    archive_fallback_dir: Path = DEFAULT_ARCHIVE_DIR
    history_max_entries: int = 10
    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    initial_settle_delay: float = 0.5
    settle_delay: float = 0.3
    max_concurrent_uploads: Optional[int] = None  # None = unbounded

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def jpeg_quality(self) -> int:
        """JPEG quality clamped to the 10..100 range."""
        return max(10, min(100, self.clipboard_jpeg_quality))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AgentConfig":
        """Build a config from ``PUSHDROP_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name)

        archive_dir = get("ARCHIVE_DIR")
        max_file_size_mb = _env_int(get("MAX_FILE_SIZE_MB"), defaults.max_file_size_mb)
        if max_file_size_mb < 1:
            raise ValueError(f"{ENV_PREFIX}MAX_FILE_SIZE_MB must be at least 1, got {max_file_size_mb}")
        return cls(
            watched_folder=get("WATCHED_FOLDER") or defaults.watched_folder,
            rename_on_upload=_env_bool(get("RENAME_ON_UPLOAD"), defaults.rename_on_upload),
            max_file_size_enabled=_env_bool(
                get("MAX_FILE_SIZE_ENABLED"), defaults.max_file_size_enabled
            ),
            max_file_size_mb=max_file_size_mb,
            clipboard_image_format=(
                get("CLIPBOARD_IMAGE_FORMAT") or defaults.clipboard_image_format
            ).lower(),
            clipboard_jpeg_quality=_env_int(
                get("CLIPBOARD_JPEG_QUALITY"), defaults.clipboard_jpeg_quality
            ),
            clipboard_save_to_uploaded=_env_bool(
                get("CLIPBOARD_SAVE_TO_UPLOADED"), defaults.clipboard_save_to_uploaded
            ),
            archive_fallback_dir=Path(archive_dir).expanduser() if archive_dir else defaults.archive_fallback_dir,
            history_max_entries=_env_int(get("HISTORY_MAX_ENTRIES"), defaults.history_max_entries),
            public_base_url=get("PUBLIC_BASE_URL") or defaults.public_base_url,
            initial_settle_delay=_env_float(
                get("INITIAL_SETTLE_DELAY"), defaults.initial_settle_delay
            ),
            settle_delay=_env_float(get("SETTLE_DELAY"), defaults.settle_delay),
            max_concurrent_uploads=_env_int(get("MAX_CONCURRENT_UPLOADS"), None),
        )


@dataclass(frozen=True)
class UploaderSettings:
    """Settings for the HTTP uploader adapter."""
    endpoint: str = ""
    auth_mode: str = "none"  # "none" or "bearer"
    token: str = ""
    field_name: str = "file"
    public_base_url: str = ""
    timeout: float = 60.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "UploaderSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            endpoint=env.get(ENV_PREFIX + "UPLOAD_ENDPOINT", defaults.endpoint),
            auth_mode=env.get(ENV_PREFIX + "UPLOAD_AUTH_MODE", defaults.auth_mode).lower(),
            token=env.get(ENV_PREFIX + "UPLOAD_TOKEN", defaults.token),
            field_name=env.get(ENV_PREFIX + "UPLOAD_FIELD", defaults.field_name),
            public_base_url=env.get(ENV_PREFIX + "PUBLIC_BASE_URL", defaults.public_base_url),
            timeout=_env_float(env.get(ENV_PREFIX + "UPLOAD_TIMEOUT"), defaults.timeout),
        )


ConfigSource = Union[AgentConfig, Callable[[], AgentConfig]]


def resolve_config(source: ConfigSource) -> AgentConfig:
    """Return the current config for either a config instance or a provider."""
    if isinstance(source, AgentConfig):
        return source
    return source()
