"""
FFmpeg stage operations for scene assembly.

Each operation builds one ffmpeg argument list, runs it through the
ProcessRunner and returns the path of the artifact it produced. Stages keep
no state between calls; everything is handed over through file paths.

Handles:
- Speed adjustment and centre trims (duration reconciliation)
- Narration muxing and concatenation
- Subtitle burn-in, watermark overlay, background music mix
- Splitting, audio extraction and scene-change probing
"""

import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from core.errors import StageExecutionError
from core.events import Severity
from core.media_inspector import MediaInspector
from core.models.render import RenderConfig, SubtitleStyle
from core.process_runner import ProcessOutcome, ProcessRunner

PathLike = Union[str, Path]

# Characters with meaning inside a filter option value, then inside a filtergraph
_OPTION_SPECIALS = ("\\", "'", ":")
_GRAPH_SPECIALS = ("\\", "'", "[", "]", ",", ";")


def _escape(value: str, specials: Sequence[str]) -> str:
    for ch in specials:
        value = value.replace(ch, "\\" + ch)
    return value


def escape_filter_path(path: PathLike) -> str:
    """
    Escape a file path for use as a filter option inside -vf / -filter_complex.

    Paths go through both escaping levels ffmpeg applies (option value, then
    filtergraph), with Windows separators normalised to forward slashes.
    """
    value = str(path).replace("\\", "/")
    return _escape(_escape(value, _OPTION_SPECIALS), _GRAPH_SPECIALS)


def _seconds(value: float) -> str:
    return f"{value:.3f}"


class StageOperations:
    """
    The fixed catalogue of media transforms used by the pipeline.

    Every method raises StageExecutionError (stage name + runner diagnostic)
    when the underlying process fails; nothing is retried here.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        runner: Optional[ProcessRunner] = None,
        config: Optional[RenderConfig] = None,
        inspector: Optional[MediaInspector] = None,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.runner = runner or ProcessRunner()
        self.config = config or RenderConfig()
        self.inspector = inspector

    async def _run(
        self,
        stage: str,
        args: List[PathLike],
        operation: str,
        total_duration: Optional[float] = None,
        cleanup: Sequence[PathLike] = (),
    ) -> ProcessOutcome:
        outcome = await self.runner.run(
            [self.ffmpeg_path, *args],
            operation=operation or stage,
            total_duration=total_duration,
            cleanup=cleanup,
        )
        if not outcome.success:
            raise StageExecutionError(stage, outcome.error_message or f"ffmpeg exited with code {outcome.returncode}", outcome)
        return outcome

    # ------------------------------------------------------------------
    # Duration reconciliation
    # ------------------------------------------------------------------

    async def speed_adjust(
        self,
        source: PathLike,
        output: PathLike,
        factor: float,
        duration: Optional[float] = None,
        operation: str = "",
    ) -> Path:
        """
        Re-time a clip so it plays `factor` times as fast (video only).

        A factor below 1 slows the clip down: output length is
        source length / factor. `duration` clamps the result to an exact length.
        """
        if factor <= 0:
            raise ValueError(f"Speed factor must be positive, got {factor}")

        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", source,
            "-filter:v", f"setpts={1 / factor:.6f}*PTS,{self.config.scale_filter()}",
            "-an",
            *self.config.video_encode_args(),
        ]
        if duration is not None:
            args.extend(["-t", _seconds(duration)])
        args.extend(["-movflags", "+faststart", output])

        await self._run("speed_adjust", args, operation, total_duration=duration)
        return Path(output)

    async def trim(
        self,
        source: PathLike,
        output: PathLike,
        start: float,
        duration: float,
        keep_audio: bool = False,
        operation: str = "",
    ) -> Path:
        """
        Cut `duration` seconds out of a clip starting at `start`.

        Seeks on the input and re-encodes so the cut is frame accurate.
        """
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-ss", _seconds(start),
            "-i", source,
            "-t", _seconds(duration),
            "-vf", self.config.scale_filter(),
            *self.config.video_encode_args(),
        ]
        if keep_audio:
            args.extend(["-c:a", self.config.audio_codec, "-b:a", self.config.audio_bitrate])
        else:
            args.append("-an")
        args.extend(["-avoid_negative_ts", "make_zero", "-movflags", "+faststart", output])

        await self._run("trim", args, operation, total_duration=duration)
        return Path(output)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    async def mux_audio(self, video: PathLike, audio: PathLike, output: PathLike, operation: str = "") -> Path:
        """Attach the narration as the only audio track; the video stream is copied."""
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", video,
            "-i", audio,
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", self.config.audio_codec,
            "-b:a", self.config.audio_bitrate,
            output,
        ]
        await self._run("mux_audio", args, operation)
        return Path(output)

    def _write_concat_list(self, clips: Sequence[PathLike], list_path: Path) -> Path:
        lines = []
        for clip in clips:
            # concat demuxer format: file '<path>' with quotes escaped
            abs_path = Path(clip).resolve().as_posix()
            escaped = abs_path.replace("'", "'\\''")
            lines.append(f"file '{escaped}'")
        list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return list_path

    async def concatenate(
        self,
        clips: Sequence[PathLike],
        output: PathLike,
        total_duration: Optional[float] = None,
        operation: str = "",
    ) -> Path:
        """
        Join same-codec clips in order with the concat demuxer (stream copy).

        The list file is written next to the output and removed afterwards.
        """
        if not clips:
            raise StageExecutionError("concatenate", "No clips provided for concatenation")

        output = Path(output)
        list_path = self._write_concat_list(clips, output.with_name(f"{output.stem}_list.txt"))
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-f", "concat",
            "-safe", "0",
            "-i", list_path,
            "-c", "copy",
            output,
        ]
        await self._run("concatenate", args, operation, total_duration=total_duration, cleanup=[list_path])
        return output

    async def burn_subtitles(
        self,
        video: PathLike,
        subtitle_path: PathLike,
        output: PathLike,
        style: Optional[SubtitleStyle] = None,
        fonts_dir: Optional[PathLike] = None,
        total_duration: Optional[float] = None,
        operation: str = "",
    ) -> Path:
        """Render an SRT file into the picture. Video is re-encoded, audio copied."""
        style = style or SubtitleStyle()
        options = [
            f"filename={escape_filter_path(subtitle_path)}",
            f"original_size={style.original_size}",
        ]
        if fonts_dir:
            options.append(f"fontsdir={escape_filter_path(fonts_dir)}")
        options.append(f"force_style='{style.force_style()}'")

        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", video,
            "-vf", "subtitles=" + ":".join(options),
            *self.config.video_encode_args(),
            "-c:a", "copy",
            output,
        ]
        await self._run("burn_subtitles", args, operation, total_duration=total_duration)
        return Path(output)

    async def overlay_watermark(
        self,
        video: PathLike,
        image: PathLike,
        output: PathLike,
        position: str = "W-w-10:H-h-10",
        total_duration: Optional[float] = None,
        operation: str = "",
    ) -> Path:
        """Composite an image over the whole video at an overlay x:y expression."""
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", video,
            "-i", image,
            "-filter_complex", f"[0:v][1:v]overlay={position}[vout]",
            "-map", "[vout]",
            "-map", "0:a?",
            *self.config.video_encode_args(),
            "-c:a", "copy",
            output,
        ]
        await self._run("overlay_watermark", args, operation, total_duration=total_duration)
        return Path(output)

    async def mix_background_music(
        self,
        video: PathLike,
        music: PathLike,
        output: PathLike,
        volume: float = 0.15,
        total_duration: Optional[float] = None,
        operation: str = "",
    ) -> Path:
        """
        Mix a looped, attenuated music track under the narration.

        The music loops indefinitely and the mix ends with the video.
        """
        filter_complex = (
            f"[1:a]volume={volume:g}[bgm];"
            "[0:a][bgm]amix=inputs=2:duration=first:dropout_transition=0:normalize=0[aout]"
        )
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", video,
            "-stream_loop", "-1",
            "-i", music,
            "-filter_complex", filter_complex,
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", self.config.audio_codec,
            "-b:a", self.config.audio_bitrate,
            "-shortest",
            output,
        ]
        await self._run("mix_background_music", args, operation, total_duration=total_duration)
        return Path(output)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    async def extract_audio(self, video: PathLike, output: PathLike, operation: str = "") -> Path:
        """Write a video's audio track out as MP3."""
        args: List[PathLike] = [
            "-y", "-hide_banner",
            "-i", video,
            "-vn",
            "-acodec", "libmp3lame",
            "-b:a", "192k",
            output,
        ]
        await self._run("extract_audio", args, operation)
        return Path(output)

    def _require_inspector(self) -> MediaInspector:
        if self.inspector is None:
            raise ValueError("This operation needs a MediaInspector")
        return self.inspector

    async def split_video(
        self,
        source: PathLike,
        output_dir: PathLike,
        segment_duration: float = 20.0,
        operation: str = "split",
    ) -> List[Path]:
        """
        Cut a long video into consecutive parts of `segment_duration` seconds.

        The last part takes whatever is left. Parts are named part_NNN.mp4.
        """
        if segment_duration <= 0:
            raise ValueError(f"Segment duration must be positive, got {segment_duration}")

        total = await self._require_inspector().duration(source)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        count = max(1, int(-(-total // segment_duration)))
        outputs = []
        for i in range(count):
            start = i * segment_duration
            duration = total - start if i == count - 1 else segment_duration
            part = output_dir / f"part_{i + 1:03d}.mp4"
            await self.trim(source, part, start, duration, keep_audio=True,
                            operation=f"{operation} - part {i + 1}/{count}")
            outputs.append(part)
            self.runner.events.progress(operation, (i + 1) / count * 100)
        return outputs

    async def split_by_segments(
        self,
        source: PathLike,
        segments: Sequence[Tuple[float, PathLike]],
        operation: str = "split segments",
    ) -> List[Path]:
        """
        Cut consecutive pieces of `source` into the given (duration, path) segments.

        A segment longer than what is left of the source is shortened; segments
        starting past the end of the source are not produced.
        """
        if not segments:
            raise ValueError("Segment list must not be empty")

        total = await self._require_inspector().duration(source)
        requested = sum(d for d, _ in segments)
        if requested > total:
            self.runner.events.log(
                f"Segments total {requested:.2f}s exceeds source length {total:.2f}s; "
                "only the available part will be split",
                Severity.WARNING,
            )

        outputs = []
        position = 0.0
        for i, (wanted, path) in enumerate(segments):
            if position >= total:
                self.runner.events.log("Reached end of source, remaining segments skipped", Severity.WARNING)
                break
            duration = min(wanted, total - position)
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            await self.trim(source, path, position, duration, keep_audio=True,
                            operation=f"{operation} - segment {i + 1}/{len(segments)}")
            outputs.append(path)
            position += duration
            self.runner.events.progress(operation, (i + 1) / len(segments) * 100)
        return outputs

    async def detect_scene_change(
        self,
        video: PathLike,
        start: float,
        check_duration: float,
        threshold: float = 0.3,
    ) -> bool:
        """Check whether any frame in [start, start+check_duration] scores above `threshold`."""
        select = f"select='between(t,{start:g},{start + check_duration:g})*gt(scene,{threshold:g})',showinfo"
        outcome = await self.runner.run(
            [self.ffmpeg_path, "-hide_banner", "-i", str(video), "-vf", select, "-an", "-f", "null", "-"],
            operation="scene change",
        )
        if outcome.error_message:
            raise StageExecutionError("detect_scene_change", outcome.error_message, outcome)
        return re.search(r"pts_time:([0-9.]+)", outcome.stderr) is not None
