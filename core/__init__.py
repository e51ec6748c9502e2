"""Core components - process running, stages, subtitles and orchestration"""

from .errors import (
    StitcherError,
    AssetMissingError,
    InspectionError,
    StageExecutionError,
    EmptyCompositionError,
    PipelineBusyError,
    ResourceCleanupWarning,
)
from .events import EventBus, Severity, LogEvent, ProgressEvent, StateEvent

# Note: PipelineOrchestrator is NOT imported here to keep `import core` light
# Import it directly: from core.pipeline import PipelineOrchestrator

__all__ = [
    # Errors
    "StitcherError",
    "AssetMissingError",
    "InspectionError",
    "StageExecutionError",
    "EmptyCompositionError",
    "PipelineBusyError",
    "ResourceCleanupWarning",

    # Events
    "EventBus",
    "Severity",
    "LogEvent",
    "ProgressEvent",
    "StateEvent",
]
