"""Data models for Scene Stitcher"""

from .render import (
    RenderConfig,
    SubtitleStyle,
)
from .pipeline import (
    BatchState,
    TimingKind,
    TimingDecision,
    Scene,
    SubtitleCue,
    OutputFailure,
    BatchResult,
)

__all__ = [
    # Render
    "RenderConfig",
    "SubtitleStyle",

    # Pipeline
    "BatchState",
    "TimingKind",
    "TimingDecision",
    "Scene",
    "SubtitleCue",
    "OutputFailure",
    "BatchResult",
]
