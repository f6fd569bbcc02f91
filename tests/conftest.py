"""Pytest fixtures for pushdrop tests."""
from pathlib import Path

import pytest
from helpers import MemoryHistory, RecordingIndicator, RecordingSink

from pushdrop.config import AgentConfig


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def indicator() -> RecordingIndicator:
    return RecordingIndicator()


@pytest.fixture
def history() -> MemoryHistory:
    return MemoryHistory()


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "watch"
    folder.mkdir()
    return folder


@pytest.fixture
def fast_config(watch_dir: Path) -> AgentConfig:
    return AgentConfig(
        watched_folder=str(watch_dir),
        initial_settle_delay=0.05,
        settle_delay=0.05,
    )
