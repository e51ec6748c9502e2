"""Shared pytest fixtures"""

import tempfile
from pathlib import Path

import pytest

from core.assets import FirstSelector
from core.config import StitcherSettings, ToolPaths
from core.events import EventBus
from core.pipeline import PipelineOrchestrator
from tests.mocks.fixtures import (
    EventRecorder,
    FakeInspector,
    FakeRunner,
    make_product_dir,
)


# ============================================================
# Workspace
# ============================================================

@pytest.fixture
def temp_dir():
    """Fresh temporary directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def product_dir(temp_dir):
    """Product directory with scenes A and B, a watermark and background music"""
    return make_product_dir(temp_dir)


# ============================================================
# Pipeline collaborators
# ============================================================

@pytest.fixture
def settings():
    """Default settings, ignoring any .env in the working directory"""
    return StitcherSettings(_env_file=None)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def recorder(events):
    """Records every event published on the bus"""
    rec = EventRecorder()
    events.add_listener(rec)
    return rec


@pytest.fixture
def fake_runner(events):
    """Runner that never spawns a process and creates each output file"""
    return FakeRunner(events)


@pytest.fixture
def fake_inspector():
    """Inspector with fixed durations (audio 4s, video 6s unless overridden)"""
    return FakeInspector()


@pytest.fixture
def orchestrator(settings, events, fake_runner, fake_inspector):
    """Orchestrator wired to fakes with deterministic asset selection"""
    return PipelineOrchestrator(
        tools=ToolPaths(ffmpeg="ffmpeg", ffprobe="ffprobe"),
        settings=settings,
        events=events,
        selector=FirstSelector(),
        runner=fake_runner,
        inspector=fake_inspector,
    )


# ============================================================
# Markers Configuration
# ============================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real ffmpeg on PATH"
    )
