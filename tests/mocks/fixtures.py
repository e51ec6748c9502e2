"""Test doubles and data factories for consistent test setup"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from core.errors import InspectionError
from core.events import EventBus, LogEvent, PipelineEvent, ProgressEvent, Severity, StateEvent
from core.media_inspector import MediaInspector
from core.process_runner import ProcessOutcome, ProcessRunner

PathLike = Union[str, Path]


class FakeRunner(ProcessRunner):
    """
    ProcessRunner that records commands instead of spawning them.

    The last argument of each command is treated as the output file and
    created (unless it already exists), so later stages find their inputs.

    Args:
        events: Event bus for log/progress events
        fail_on: Substring of the operation name that makes a run fail
        fail_times: 1-based occurrences of `fail_on` that fail (all if None)
        partial_output: Write the output file before a simulated failure, like an
            encoder that dies mid-write
        stdout: Standard output returned by successful runs
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        fail_on: Optional[str] = None,
        fail_times: Optional[Set[int]] = None,
        partial_output: bool = False,
        stdout: str = "",
    ):
        super().__init__(events)
        self.calls: List[List[str]] = []
        self.operations: List[str] = []
        self.fail_on = fail_on
        self.fail_times = fail_times
        self.partial_output = partial_output
        self.stdout = stdout
        self._matches = 0

    async def run(self, args, operation="", total_duration=None, cleanup=()):
        argv = [str(a) for a in args]
        self.calls.append(argv)
        self.operations.append(operation)
        try:
            failing = self._should_fail(operation)
            if failing and not self.partial_output:
                return ProcessOutcome(args=argv, returncode=1, stderr="simulated failure: Invalid data found")
            output = Path(argv[-1])
            if output.suffix and not output.exists():
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(b"truncated" if failing else b"fake media")
            if failing:
                return ProcessOutcome(args=argv, returncode=1, stderr="simulated failure: Conversion failed!")
            return ProcessOutcome(args=argv, returncode=0, stdout=self.stdout)
        finally:
            self._cleanup(cleanup)

    def _should_fail(self, operation: str) -> bool:
        if not self.fail_on or self.fail_on not in operation:
            return False
        self._matches += 1
        return self.fail_times is None or self._matches in self.fail_times

    def calls_for(self, fragment: str) -> List[List[str]]:
        """Commands whose operation name contains `fragment`."""
        return [c for c, op in zip(self.calls, self.operations) if fragment in op]


class FakeInspector(MediaInspector):
    """
    MediaInspector answering from a table of durations by file name.

    Files not in the table get `audio_default` (audio suffixes) or
    `video_default`. Names in `broken` raise InspectionError.
    """

    def __init__(
        self,
        durations: Optional[Dict[str, float]] = None,
        audio_default: float = 4.0,
        video_default: float = 6.0,
        broken: Iterable[str] = (),
    ):
        super().__init__("ffprobe")
        self.durations = durations or {}
        self.audio_default = audio_default
        self.video_default = video_default
        self.broken = set(broken)
        self.probed: List[Path] = []

    async def duration(self, path: PathLike) -> float:
        path = Path(path)
        self.probed.append(path)
        if path.name in self.broken:
            raise InspectionError(str(path), "no numeric duration in probe output ''")
        if path.name in self.durations:
            return self.durations[path.name]
        return self.audio_default if path.suffix.lower() == ".mp3" else self.video_default

    async def has_audio_stream(self, path: PathLike) -> bool:
        return True


class EventRecorder:
    """Event listener that keeps everything it receives."""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def __call__(self, event: PipelineEvent) -> None:
        self.events.append(event)

    @property
    def logs(self) -> List[LogEvent]:
        return [e for e in self.events if isinstance(e, LogEvent)]

    @property
    def progress(self) -> List[ProgressEvent]:
        return [e for e in self.events if isinstance(e, ProgressEvent)]

    @property
    def states(self) -> List[bool]:
        return [e.is_processing for e in self.events if isinstance(e, StateEvent)]

    def messages(self, severity: Optional[Severity] = None) -> List[str]:
        return [e.message for e in self.logs if severity is None or e.severity == severity]


DEFAULT_SCENES = {
    "A": (["Welcome to the shop.mp3"], ["a_backdrop.mp4"]),
    "B": (["Fresh every day.mp3"], ["b_backdrop.mp4"]),
}


def make_product_dir(
    root: PathLike,
    name: str = "teapot",
    scenes: Optional[Dict[str, Sequence[Sequence[str]]]] = None,
    watermark: bool = True,
    music: bool = True,
) -> Path:
    """
    Factory for a product directory on disk.

    `scenes` maps a folder name to (audio file names, video file names).
    """
    product = Path(root) / name
    product.mkdir(parents=True, exist_ok=True)
    for folder, (audio_files, video_files) in (scenes if scenes is not None else DEFAULT_SCENES).items():
        scene_dir = product / folder
        scene_dir.mkdir(exist_ok=True)
        for file_name in [*audio_files, *video_files]:
            (scene_dir / file_name).write_bytes(b"media")
    if watermark:
        (product / "logo.png").write_bytes(b"png")
    if music:
        (product / "bgm.mp3").write_bytes(b"mp3")
    return product
