"""
Process runner for external media tools.

Runs one ffmpeg/ffprobe invocation from a typed argument list, streams its
error output for progress and diagnostics, and always resolves to a
ProcessOutcome instead of raising for expected tool failures.
"""

import asyncio
import codecs
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from core.errors import ResourceCleanupWarning
from core.events import EventBus, Severity


PathLike = Union[str, Path]

DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
TIME_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
INTEREST_RE = re.compile(r"error|invalid|failed|no such file|unable|not found", re.IGNORECASE)

READ_CHUNK = 4096


def parse_clock(hours: str, minutes: str, seconds: str) -> float:
    """Convert an ffmpeg HH:MM:SS.xx clock into seconds."""
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


@dataclass
class ProcessOutcome:
    """
    Tagged result of one external process run.

    Attributes:
        args: The argument list that was executed
        returncode: Exit code, None if the process could not be spawned
        stdout: Captured standard output
        stderr: Captured standard error (full)
        error_message: Spawn failure description
    """
    args: List[str]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.returncode == 0 and self.error_message is None

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)

    def diagnostic(self) -> str:
        """Multi-line description for failure logs."""
        lines = [f"Command: {self.command_line}"]
        if self.error_message:
            lines.append(f"Spawn error: {self.error_message}")
        else:
            lines.append(f"Exit code: {self.returncode}")
        if self.stderr:
            lines.append("Error output:")
            lines.append(self.stderr.rstrip())
        return "\n".join(lines)


class _ProgressTracker:
    """Turns ffmpeg stderr lines into percentage progress events."""

    def __init__(self, operation: str, total: Optional[float], events: EventBus):
        self.operation = operation
        self.total = total if total and total > 0 else None
        self.events = events
        self.last_percent: Optional[float] = None

    def feed(self, line: str) -> None:
        if self.total is None:
            match = DURATION_RE.search(line)
            if match:
                total = parse_clock(*match.groups())
                if total > 0:
                    self.total = total
                return

        match = TIME_RE.search(line)
        if match and self.total:
            position = parse_clock(*match.groups())
            percent = min(100.0, position / self.total * 100)
            self.last_percent = percent
            self.events.progress(self.operation, percent)


class ProcessRunner:
    """
    Executes external media commands.

    Every run emits a debug log with the command line, progress events while
    the tool reports its position, and resolves to a ProcessOutcome.
    """

    def __init__(self, events: Optional[EventBus] = None):
        self.events = events or EventBus()

    async def run(
        self,
        args: Sequence[PathLike],
        operation: str = "",
        total_duration: Optional[float] = None,
        cleanup: Sequence[PathLike] = (),
    ) -> ProcessOutcome:
        """
        Run one external process to completion.

        Args:
            args: Executable followed by its arguments (no shell involved)
            operation: Human-readable name used in progress events
            total_duration: Expected media duration for percentage progress;
                when omitted the first "Duration:" line is used
            cleanup: Temporary files removed after the process exits,
                whether it succeeded or not

        Returns:
            ProcessOutcome (never raises for tool failures)
        """
        argv = [str(a) for a in args]
        tool = Path(argv[0]).stem
        operation = operation or tool
        self.events.log(f"[{tool}] {operation}: {shlex.join(argv)}", Severity.DEBUG)

        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                self.events.log(f"[{tool}] {operation}: could not start {argv[0]}: {e}", Severity.ERROR)
                return ProcessOutcome(args=argv, returncode=None, error_message=str(e))

            tracker = _ProgressTracker(operation, total_duration, self.events)
            stderr_lines: List[str] = []
            try:
                stdout_text, _ = await asyncio.gather(
                    self._read_all(process.stdout),
                    self._read_lines(process.stderr, tracker, stderr_lines, operation),
                )
                returncode = await process.wait()
            except asyncio.CancelledError:
                await self._kill(process, tool, operation)
                raise

            outcome = ProcessOutcome(
                args=argv,
                returncode=returncode,
                stdout=stdout_text,
                stderr="\n".join(stderr_lines),
            )
            if outcome.success:
                if tracker.total:
                    self.events.progress(operation, 100.0)
                self.events.log(f"[{tool}] {operation} finished", Severity.DEBUG)
            else:
                self.events.log(f"[{tool}] {operation} exited with code {returncode}", Severity.ERROR)
            return outcome
        finally:
            self._cleanup(cleanup)

    async def _kill(self, process: asyncio.subprocess.Process, tool: str, operation: str) -> None:
        """Terminate and reap a child whose caller was cancelled."""
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        self.events.log(f"[{tool}] {operation} cancelled; process killed", Severity.WARNING)

    async def _read_all(self, stream: Optional[asyncio.StreamReader]) -> str:
        if stream is None:
            return ""
        data = await stream.read()
        return data.decode("utf-8", errors="replace")

    async def _read_lines(
        self,
        stream: Optional[asyncio.StreamReader],
        tracker: _ProgressTracker,
        lines: List[str],
        operation: str,
    ) -> None:
        """Split stderr on both \\n and \\r so progress updates are seen live."""
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        while True:
            chunk = await stream.read(READ_CHUNK)
            if not chunk:
                break
            buffer += decoder.decode(chunk)
            parts = re.split(r"[\r\n]", buffer)
            buffer = parts.pop()
            for part in parts:
                self._handle_line(part, tracker, lines, operation)
        buffer += decoder.decode(b"", final=True)
        if buffer:
            self._handle_line(buffer, tracker, lines, operation)

    def _handle_line(self, line: str, tracker: _ProgressTracker, lines: List[str], operation: str) -> None:
        line = line.strip()
        if not line:
            return
        lines.append(line)
        tracker.feed(line)
        if INTEREST_RE.search(line):
            self.events.log(f"{operation}: {line}", Severity.DEBUG)

    def _cleanup(self, paths: Sequence[PathLike]) -> None:
        for path in paths:
            try:
                Path(path).unlink(missing_ok=True)
            except OSError as e:
                self.events.log(
                    f"{ResourceCleanupWarning.__name__}: could not remove {path}: {e}",
                    Severity.WARNING,
                )


async def tool_version(executable: str) -> Optional[str]:
    """First line of `<tool> -version`, or None if the tool cannot run."""
    outcome = await ProcessRunner().run([executable, "-version"], operation="version")
    if not outcome.success:
        return None
    first_line = outcome.stdout.splitlines()[0] if outcome.stdout else ""
    return first_line or None
