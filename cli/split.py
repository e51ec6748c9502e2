"""Split command - cut a long video into fixed-length parts"""

import asyncio
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn

from core.config import get_settings, resolve_tool_paths
from core.errors import StitcherError
from core.events import EventBus, PipelineEvent, ProgressEvent
from core.media_inspector import MediaInspector
from core.process_runner import ProcessRunner
from core.stages import StageOperations

console = Console()


async def run_split(source: Path, output_dir: Path, segment_duration: float) -> List[Path]:
    tools = resolve_tool_paths()
    events = EventBus()
    runner = ProcessRunner(events)
    stages = StageOperations(
        ffmpeg_path=tools.ffmpeg,
        runner=runner,
        config=get_settings().render_config(),
        inspector=MediaInspector(tools.ffprobe, runner),
    )

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>5.1f}%"),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task(f"Splitting {source.name}", total=100)

        def on_event(event: PipelineEvent) -> None:
            if isinstance(event, ProgressEvent) and event.operation == "split":
                progress.update(task_id, completed=event.percent)

        events.add_listener(on_event)
        return await stages.split_video(source, output_dir, segment_duration, operation="split")


@click.command()
@click.argument("video", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--segment-duration", "-d", type=click.FloatRange(min=0, min_open=True), default=20.0,
              show_default=True, help="Length of each part in seconds")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Where to write the parts (default: <video>_parts next to the video)")
def split_cmd(video: Path, segment_duration: float, output_dir: Optional[Path]):
    """Cut a long video into consecutive parts (part_001.mp4, part_002.mp4, ...)"""
    output_dir = output_dir or video.with_name(f"{video.stem}_parts")

    try:
        parts = asyncio.run(run_split(video, output_dir, segment_duration))
    except StitcherError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise SystemExit(1)

    console.print(f"[green]✓[/green] Wrote {len(parts)} part(s) to {output_dir}")
