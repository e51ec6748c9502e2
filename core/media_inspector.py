"""
Media inspection helpers.

Answers the one question the orchestrator needs before choosing a timing
decision: how long is this file?
"""

import math
from pathlib import Path
from typing import Optional, Union

import mutagen
from mutagen import MutagenError

from core.errors import InspectionError
from core.process_runner import ProcessRunner

PathLike = Union[str, Path]

AUDIO_SUFFIXES = {".mp3", ".m4a", ".aac", ".wav", ".flac", ".ogg", ".opus"}


class MediaInspector:
    """Duration and stream queries backed by ffprobe."""

    def __init__(self, ffprobe_path: str = "ffprobe", runner: Optional[ProcessRunner] = None):
        self.ffprobe_path = ffprobe_path
        self.runner = runner or ProcessRunner()

    async def duration(self, path: PathLike) -> float:
        """
        Get the duration of a media file in seconds.

        Audio files are read with mutagen first (no subprocess needed);
        ffprobe is the fallback and the only source for video containers.

        Raises:
            InspectionError: If no positive numeric duration can be produced
        """
        path = Path(path)
        if not path.is_file():
            raise InspectionError(str(path), "file does not exist")

        if path.suffix.lower() in AUDIO_SUFFIXES:
            length = self._tag_duration(path)
            if length:
                return length

        outcome = await self.runner.run(
            [
                self.ffprobe_path,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(path),
            ],
            operation=f"probe {path.name}",
        )
        if not outcome.success:
            reason = outcome.error_message or outcome.stderr.strip() or f"ffprobe exited with {outcome.returncode}"
            raise InspectionError(str(path), reason)

        text = outcome.stdout.strip()
        try:
            value = float(text)
        except ValueError:
            raise InspectionError(str(path), f"no numeric duration in probe output {text!r}")

        if not math.isfinite(value) or value <= 0:
            raise InspectionError(str(path), f"invalid duration {value}")
        return value

    def _tag_duration(self, path: Path) -> Optional[float]:
        try:
            audio = mutagen.File(str(path))
        except (MutagenError, OSError):
            return None
        if audio is None or audio.info is None:
            return None
        length = getattr(audio.info, "length", None)
        if not length or not math.isfinite(length) or length <= 0:
            return None
        return float(length)

    async def has_audio_stream(self, path: PathLike) -> bool:
        """Check whether a file carries at least one audio stream."""
        outcome = await self.runner.run(
            [
                self.ffprobe_path,
                "-v", "error",
                "-select_streams", "a",
                "-show_entries", "stream=codec_type",
                "-of", "csv=p=0",
                str(path),
            ],
            operation=f"audio streams {Path(path).name}",
        )
        if not outcome.success:
            return False
        return "audio" in outcome.stdout
