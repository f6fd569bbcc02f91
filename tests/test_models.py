"""Tests for pushdrop models and configuration."""
from pathlib import Path

import pytest

from pushdrop.config import AgentConfig, UploaderSettings, resolve_config
from pushdrop.errors import SizeLimitExceeded, WriteFailed
from pushdrop.models import (
    BatchState,
    SourceKind,
    UploadOutcome,
    UploadRequest,
    UploadResponse,
    UploadSource,
)


class TestUploadRequest:
    def test_effective_name_prefers_override(self):
        request = UploadRequest(Path("/w/a.png"), UploadSource.clipboard_file(), "Xyz.png")
        assert request.effective_name == "Xyz.png"

    def test_effective_name_falls_back_to_file_name(self):
        request = UploadRequest(Path("/w/a.png"), UploadSource.folder(Path("/w")))
        assert request.effective_name == "a.png"
        assert request.source.kind == SourceKind.FOLDER
        assert request.source.origin_folder == Path("/w")

    def test_immutable(self):
        request = UploadRequest(Path("a.png"), UploadSource.clipboard_temporary())
        with pytest.raises(Exception):
            request.remote_file_name = "b.png"


class TestUploadOutcome:
    def test_ok(self):
        outcome = UploadOutcome.ok(UploadResponse(remote_path="/r/a", public_url="https://x/a"))
        assert outcome.success is True
        assert outcome.error is None

    def test_fail(self):
        outcome = UploadOutcome.fail(WriteFailed("disk full"))
        assert outcome.success is False
        assert outcome.error.message == "Upload error: disk full"


class TestErrors:
    def test_size_limit_message(self):
        error = SizeLimitExceeded(limit_mb=10, actual_mb=12)
        assert "12 MB" in error.message
        assert "10 MB" in error.message


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.max_file_size_mb == 200
        assert config.clipboard_image_format == "png"
        assert config.history_max_entries == 10
        assert config.rename_on_upload is False
        assert config.initial_settle_delay == 0.5
        assert config.settle_delay == 0.3
        assert config.max_concurrent_uploads is None

    def test_jpeg_quality_clamped(self):
        assert AgentConfig(clipboard_jpeg_quality=3).jpeg_quality == 10
        assert AgentConfig(clipboard_jpeg_quality=150).jpeg_quality == 100
        assert AgentConfig(clipboard_jpeg_quality=75).jpeg_quality == 75

    def test_from_env(self):
        config = AgentConfig.from_env({
            "PUSHDROP_WATCHED_FOLDER": "/drop",
            "PUSHDROP_RENAME_ON_UPLOAD": "yes",
            "PUSHDROP_MAX_FILE_SIZE_ENABLED": "1",
            "PUSHDROP_MAX_FILE_SIZE_MB": "5",
            "PUSHDROP_CLIPBOARD_IMAGE_FORMAT": "JPG",
            "PUSHDROP_MAX_CONCURRENT_UPLOADS": "2",
        })
        assert config.watched_folder == "/drop"
        assert config.rename_on_upload is True
        assert config.max_file_size_enabled is True
        assert config.max_file_size_bytes == 5 * 1024 * 1024
        assert config.clipboard_image_format == "jpg"
        assert config.max_concurrent_uploads == 2

    def test_size_limit_used_as_configured(self):
        assert AgentConfig(max_file_size_mb=0).max_file_size_bytes == 0
        assert AgentConfig(max_file_size_mb=3).max_file_size_bytes == 3 * 1024 * 1024

    def test_from_env_rejects_size_limit_below_one(self):
        with pytest.raises(ValueError, match="MAX_FILE_SIZE_MB"):
            AgentConfig.from_env({"PUSHDROP_MAX_FILE_SIZE_MB": "0"})

    def test_resolve_config_accepts_provider(self):
        config = AgentConfig(watched_folder="/x")
        assert resolve_config(config) is config
        assert resolve_config(lambda: config) is config


class TestUploaderSettings:
    def test_from_env(self):
        settings = UploaderSettings.from_env({
            "PUSHDROP_UPLOAD_ENDPOINT": "https://files.test/upload",
            "PUSHDROP_UPLOAD_AUTH_MODE": "Bearer",
            "PUSHDROP_UPLOAD_TOKEN": "t0k",
        })
        assert settings.endpoint == "https://files.test/upload"
        assert settings.auth_mode == "bearer"
        assert settings.token == "t0k"


def test_batch_state_starts_empty():
    state = BatchState()
    assert (state.success_count, state.error_count) == (0, 0)
    assert state.last_success_name is None
