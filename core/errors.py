"""
Scene Stitcher exception hierarchy.

All pipeline errors inherit from StitcherError so the orchestrator can
catch a single type at the per-output boundary.

Usage:
    from core.errors import StageExecutionError

    try:
        await stages.trim(...)
    except StageExecutionError as e:
        logger.error(f"{e.stage} failed: {e.diagnostic}")
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from core.process_runner import ProcessOutcome


class StitcherError(Exception):
    """Base exception for all Scene Stitcher errors."""
    pass


class AssetMissingError(StitcherError):
    """A scene folder lacks a usable audio or video asset (scene is skipped)."""

    def __init__(self, scene: str, missing: str):
        self.scene = scene
        self.missing = missing
        super().__init__(f"Scene {scene} has no {missing} asset")


class InspectionError(StitcherError):
    """The duration probe could not produce a numeric duration."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not determine duration of {path}: {reason}")


class StageExecutionError(StitcherError):
    """An external stage invocation exited non-zero or could not be spawned."""

    def __init__(self, stage: str, message: str, outcome: Optional["ProcessOutcome"] = None):
        self.stage = stage
        self.outcome = outcome
        super().__init__(f"[{stage}] {message}")

    @property
    def diagnostic(self) -> str:
        """Full diagnostic text (command line, inputs, error stream)."""
        if self.outcome is None:
            return str(self)
        return self.outcome.diagnostic()


class EmptyCompositionError(StitcherError):
    """No scene produced a usable clip, so there is nothing to concatenate."""
    pass


class PipelineBusyError(StitcherError):
    """A batch is already running for this orchestrator."""
    pass


class ResourceCleanupWarning(UserWarning):
    """Temporary artifact removal failed. Logged, never escalated."""
    pass
