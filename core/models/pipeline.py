"""
Pipeline models for scene assembly

These models describe the scenes picked from a product directory, the
per-scene timing decision, subtitle cues and the outcome of a batch.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class BatchState(Enum):
    """Lifecycle of a batch request"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TimingKind(Enum):
    """How a scene's video is fitted to its narration"""
    SPEED_ADJUST = "speed_adjust"
    TRIM = "trim"


@dataclass(frozen=True)
class TimingDecision:
    """
    Per-scene decision that makes the processed clip last exactly as long
    as the narration.

    Attributes:
        kind: SPEED_ADJUST when the video is shorter than the audio, else TRIM
        target_duration: Narration duration the clip must match (seconds)
        factor: Speed factor (video/audio), only for SPEED_ADJUST
        start_offset: Trim start (seconds), only for TRIM
    """
    kind: TimingKind
    target_duration: float
    factor: Optional[float] = None
    start_offset: Optional[float] = None

    @classmethod
    def for_durations(cls, video_duration: float, audio_duration: float) -> "TimingDecision":
        """Slow the video down when it is too short, otherwise cut out its middle."""
        if video_duration < audio_duration:
            return cls(
                kind=TimingKind.SPEED_ADJUST,
                target_duration=audio_duration,
                factor=video_duration / audio_duration,
            )
        return cls(
            kind=TimingKind.TRIM,
            target_duration=audio_duration,
            start_offset=(video_duration - audio_duration) / 2,
        )

    def describe(self) -> str:
        if self.kind == TimingKind.SPEED_ADJUST:
            return f"speed x{self.factor:.3f}"
        return f"trim from {self.start_offset:.2f}s"


@dataclass
class Scene:
    """
    One letter-named scene folder with the assets picked for this output.

    Durations are filled in once the scene has been probed.
    """
    name: str
    folder: Path
    audio_path: Path
    video_path: Path
    audio_duration: Optional[float] = None
    video_duration: Optional[float] = None

    @property
    def subtitle_text(self) -> str:
        """Subtitle line for this scene: the narration file's base name.

        Undecodable file name bytes become U+FFFD so the line can be written as UTF-8.
        """
        return self.audio_path.stem.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


@dataclass(frozen=True)
class SubtitleCue:
    """A timed subtitle line (seconds)"""
    text: str
    start: float
    end: float


@dataclass
class OutputFailure:
    """Why one output of a batch failed"""
    index: int
    error: str
    stage: Optional[str] = None


@dataclass
class BatchResult:
    """
    Outcome of a batch request.

    The batch itself always completes; failed outputs are listed here and
    narrated on the log stream.
    """
    product_dir: Path
    requested: int
    completed: List[Path] = field(default_factory=list)
    failed: List[OutputFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return len(self.completed) + len(self.failed)
