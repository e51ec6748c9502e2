"""
Pipeline Orchestrator - assembles finished videos from a product directory

For every requested output it runs the seven-stage protocol:
1. Create a private temp directory (always removed afterwards)
2. Pick one narration and one backdrop per scene folder
3. Fit each backdrop to its narration (speed up/down or centre trim) and mux
4. Concatenate the scenes
5. Burn in subtitles built from the narration names
6. Overlay the product watermark (optional)
7. Mix background music (optional) and write NNN--<product>.mp4

Outputs are produced one at a time. A failed output is logged and the batch
moves on; stop requests are honoured between outputs only.
"""

import asyncio
import dataclasses
import os
import shutil
import tempfile
import traceback
from pathlib import Path
from typing import List, Optional, Tuple, Union

from core.assets import AssetSelector, RandomSelector, list_scene_dirs, next_output_path, pick_file
from core.config import StitcherSettings, ToolPaths, get_settings, resolve_tool_paths
from core.errors import (
    AssetMissingError,
    EmptyCompositionError,
    PipelineBusyError,
    ResourceCleanupWarning,
    StageExecutionError,
    StitcherError,
)
from core.events import EventBus, Severity
from core.media_inspector import MediaInspector
from core.models.pipeline import (
    BatchResult,
    BatchState,
    OutputFailure,
    Scene,
    TimingDecision,
    TimingKind,
)
from core.process_runner import ProcessRunner
from core.stages import StageOperations
from core.subtitles import synthesize

PathLike = Union[str, Path]

STAGE_COUNT = 7


class PipelineOrchestrator:
    """
    Drives the stage operations for batches of outputs.

    All collaborators are injectable so tests can run the full protocol
    against fakes without spawning ffmpeg.
    """

    def __init__(
        self,
        tools: Optional[ToolPaths] = None,
        settings: Optional[StitcherSettings] = None,
        events: Optional[EventBus] = None,
        selector: Optional[AssetSelector] = None,
        runner: Optional[ProcessRunner] = None,
        inspector: Optional[MediaInspector] = None,
        stages: Optional[StageOperations] = None,
    ):
        """
        Args:
            tools: Resolved ffmpeg/ffprobe/fonts locations (resolved from settings if omitted)
            settings: Pipeline settings (process-wide settings if omitted)
            events: Event bus shared with subscribers
            selector: Asset selection strategy (uniform random by default)
            runner: Process runner used by the default inspector and stages
            inspector: Media inspector for durations
            stages: Stage operations implementation
        """
        self.settings = settings or get_settings()
        self.tools = tools or resolve_tool_paths(self.settings)
        self.events = events or EventBus()
        self.selector = selector or RandomSelector()
        self.runner = runner or ProcessRunner(self.events)
        self.inspector = inspector or MediaInspector(self.tools.ffprobe, self.runner)
        self.stages = stages or StageOperations(
            ffmpeg_path=self.tools.ffmpeg,
            runner=self.runner,
            config=self.settings.render_config(),
            inspector=self.inspector,
        )
        self.subtitle_style = self.settings.subtitle_style()

        self._state = BatchState.IDLE
        self._stop_requested = False
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._state == BatchState.RUNNING

    def configure_subtitles(self, **overrides) -> None:
        """Override individual subtitle style fields (font_size=60, margin_v=200, ...)."""
        self.subtitle_style = dataclasses.replace(self.subtitle_style, **overrides)

    def start(self, product_dir: PathLike, count: int) -> asyncio.Task:
        """
        Schedule a batch on the running event loop.

        Raises:
            PipelineBusyError: If a batch is already running
        """
        self._claim()
        self._task = asyncio.create_task(self._run_batch(Path(product_dir), count))
        self._task.add_done_callback(self._on_task_done)
        return self._task

    async def generate_videos(self, product_dir: PathLike, count: int) -> BatchResult:
        """
        Run a batch in the current task and return its result.

        Raises:
            PipelineBusyError: If a batch is already running
        """
        self._claim()
        return await self._run_batch(Path(product_dir), count)

    def stop(self) -> None:
        """Ask the running batch to stop once the current output has finished."""
        if not self.is_processing:
            self.events.log("No batch is running; nothing to stop")
            return
        self._stop_requested = True
        self.events.log("🚦 Stop requested; processing ends after the current video", Severity.WARNING)

    def _claim(self) -> None:
        if self.is_processing:
            self.events.log("A batch is already running; start request rejected", Severity.WARNING)
            raise PipelineBusyError("A batch is already running")
        self._state = BatchState.RUNNING
        self._stop_requested = False
        self.events.state(True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        # A task cancelled before its first step never reaches _run_batch's finally
        if task.cancelled() and self._state == BatchState.RUNNING:
            self._state = BatchState.CANCELLED
            self.events.log("🚦 Batch cancelled before it started", Severity.WARNING)
            self.events.state(False)

    # ------------------------------------------------------------------
    # Batch loop
    # ------------------------------------------------------------------

    async def _run_batch(self, product_dir: Path, count: int) -> BatchResult:
        result = BatchResult(product_dir=product_dir, requested=count)
        try:
            self.events.log(f"🎬 Generating {count} video(s) for {product_dir.name}...")

            for index in range(1, count + 1):
                if self._stop_requested:
                    result.cancelled = True
                    self.events.log("🚦 Stop requested; remaining videos were not started", Severity.WARNING)
                    break

                self.events.log(f"🎬 [{index}/{count}] Generating video {index}...")
                try:
                    output = await self.generate_single(product_dir, index)
                except Exception as e:
                    stage = e.stage if isinstance(e, StageExecutionError) else None
                    self.events.log(f"❌ [{index}/{count}] Video {index} failed: {e}", Severity.ERROR)
                    if isinstance(e, StageExecutionError):
                        self.events.log(e.diagnostic, Severity.DEBUG)
                    elif not isinstance(e, StitcherError):
                        details = traceback.format_exception(type(e), e, e.__traceback__)
                        self.events.log("".join(details), Severity.DEBUG)
                    result.failed.append(OutputFailure(index=index, error=str(e), stage=stage))
                else:
                    result.completed.append(output)
                    self.events.log(f"✅ [{index}/{count}] Video {index} done: {output.name}", Severity.SUCCESS)

                # Scheduling point: lets stop() requests land between outputs
                await asyncio.sleep(0)

            self.events.log(
                f"🎉 Batch finished: {len(result.completed)} succeeded, {len(result.failed)} failed",
                Severity.SUCCESS,
            )
        except asyncio.CancelledError:
            result.cancelled = True
            raise
        finally:
            self._state = BatchState.CANCELLED if result.cancelled else BatchState.COMPLETED
            self.events.state(False)
        return result

    # ------------------------------------------------------------------
    # One output
    # ------------------------------------------------------------------

    def _stage(self, number: int, message: str) -> None:
        self.events.log(f"[{number}/{STAGE_COUNT}] {message}")

    async def generate_single(self, product_dir: PathLike, index: int) -> Path:
        """
        Produce one finished video and return its path.

        The temp directory is removed whether the output succeeds or fails.
        """
        product_dir = Path(product_dir)
        temp_dir = Path(tempfile.mkdtemp(prefix=f"temp_{index}_", dir=product_dir))
        self._stage(1, f"Created temp directory: {temp_dir}")
        try:
            return await self._compose(product_dir, temp_dir)
        finally:
            self._remove_temp_dir(temp_dir)

    def select_scenes(self, product_dir: PathLike) -> List[Scene]:
        """Pick the assets for every usable scene folder, skipping incomplete ones."""
        scenes = []
        for folder in list_scene_dirs(product_dir):
            audio = pick_file(folder, self.settings.audio_extension, self.selector)
            video = pick_file(folder, self.settings.video_extension, self.selector)
            if audio is None or video is None:
                missing = AssetMissingError(folder.name, "audio" if audio is None else "video")
                self.events.log(f"  - Warning: {missing}, scene skipped", Severity.WARNING)
                continue
            scenes.append(Scene(name=folder.name, folder=folder, audio_path=audio, video_path=video))
        return scenes

    async def _compose(self, product_dir: Path, temp_dir: Path) -> Path:
        self._stage(2, "Selecting scene assets...")
        scenes = self.select_scenes(product_dir)

        self._stage(3, f"Processing {len(scenes)} scene(s)...")
        clips: List[Path] = []
        subtitle_items: List[Tuple[str, float]] = []
        for position, scene in enumerate(scenes, start=1):
            clip = await self._process_scene(scene, position, temp_dir)
            clips.append(clip)
            subtitle_items.append((scene.subtitle_text, scene.audio_duration))
            await asyncio.sleep(0)

        self._stage(4, "Concatenating scenes...")
        if not clips:
            raise EmptyCompositionError("No scene produced a usable clip; check the A, B, C... folders")
        total_duration = sum(d for _, d in subtitle_items)
        merged = await self.stages.concatenate(
            clips, temp_dir / "merge.mp4", total_duration=total_duration, operation="Concatenate scenes"
        )

        self._stage(5, "Generating and burning subtitles...")
        srt_path = temp_dir / "subtitles.srt"
        srt_path.write_text(synthesize(subtitle_items), encoding="utf-8")
        current = await self.stages.burn_subtitles(
            merged,
            srt_path,
            temp_dir / "merge_subtitle.mp4",
            style=self.subtitle_style,
            fonts_dir=self.tools.fonts_dir,
            total_duration=total_duration,
            operation="Burn subtitles",
        )

        self._stage(6, "Adding watermark...")
        watermark = pick_file(product_dir, self.settings.watermark_extension, self.selector)
        if watermark:
            current = await self.stages.overlay_watermark(
                current,
                watermark,
                temp_dir / "merge_subtitle_watermark.mp4",
                position=self.settings.watermark_position,
                total_duration=total_duration,
                operation="Overlay watermark",
            )
        else:
            self.events.log(
                f"  - Warning: no {self.settings.watermark_extension} watermark in the product folder, skipped",
                Severity.WARNING,
            )

        self._stage(7, "Adding background music and writing the output...")
        output_dir = product_dir / self.settings.output_dir_name
        output_dir.mkdir(parents=True, exist_ok=True)
        final_path = next_output_path(output_dir, product_dir.name)

        # Stage inside the temp dir; only a complete file is moved into the output folder
        staged = temp_dir / "final.mp4"
        music = pick_file(product_dir, self.settings.music_extension, self.selector)
        if music:
            await self.stages.mix_background_music(
                current,
                music,
                staged,
                volume=self.settings.bgm_volume,
                total_duration=total_duration,
                operation="Mix background music",
            )
        else:
            self.events.log(
                f"  - Warning: no {self.settings.music_extension} background music in the product folder, "
                "writing the video without it",
                Severity.WARNING,
            )
            shutil.copyfile(current, staged)
        os.replace(staged, final_path)

        self.events.log(f"  - Output written to: {final_path}")
        return final_path

    async def _process_scene(self, scene: Scene, position: int, temp_dir: Path) -> Path:
        scene.audio_duration = await self.inspector.duration(scene.audio_path)
        scene.video_duration = await self.inspector.duration(scene.video_path)
        decision = TimingDecision.for_durations(scene.video_duration, scene.audio_duration)

        self.events.log(
            f"  - Scene {scene.name} (audio: {scene.audio_path.name} {scene.audio_duration:.2f}s, "
            f"video: {scene.video_path.name} {scene.video_duration:.2f}s) -> {decision.describe()}"
        )

        processed = temp_dir / f"process_{position:03d}.mp4"
        if decision.kind == TimingKind.SPEED_ADJUST:
            await self.stages.speed_adjust(
                scene.video_path,
                processed,
                decision.factor,
                duration=decision.target_duration,
                operation=f"Scene {scene.name} - adjust speed",
            )
        else:
            await self.stages.trim(
                scene.video_path,
                processed,
                decision.start_offset,
                decision.target_duration,
                operation=f"Scene {scene.name} - trim",
            )

        return await self.stages.mux_audio(
            processed,
            scene.audio_path,
            temp_dir / f"add_audio_{position:03d}.mp4",
            operation=f"Scene {scene.name} - add narration",
        )

    def _remove_temp_dir(self, temp_dir: Path) -> None:
        try:
            shutil.rmtree(temp_dir)
        except OSError as e:
            self.events.log(
                f"{ResourceCleanupWarning.__name__}: could not remove {temp_dir}: {e}",
                Severity.WARNING,
            )
            return
        self.events.log(f"  - Removed temp directory: {temp_dir}", Severity.DEBUG)
