from __future__ import annotations

import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("NOTIFY_URL", "")

from src.studio.config import AppConfig  # noqa: E402

from tests.helpers.pipeline import PipelineHarness, RecordingNotifier, build_config, build_harness  # noqa: E402


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    config = build_config(tmp_path)
    yield config
    config.engine.dispose()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def harness(app_config: AppConfig, notifier: RecordingNotifier) -> PipelineHarness:
    return build_harness(app_config, notifier=notifier)
