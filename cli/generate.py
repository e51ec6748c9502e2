"""Generate command - Assemble finished videos from a product directory"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Dict, Optional

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table
from rich.text import Text
from rich import box

from core.assets import RandomSelector
from core.events import EventBus, LogEvent, PipelineEvent, ProgressEvent, Severity
from core.models.pipeline import BatchResult
from core.pipeline import PipelineOrchestrator
from cli.theme import get_default_theme_name, get_theme, list_themes, set_theme

console = Console()


def configure_file_logging(log_file: Path) -> logging.Handler:
    """Persist the full log (debug included) to a file."""
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    return handler


async def run_batch(
    product_dir: Path,
    count: int,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> BatchResult:
    """Run one batch while rendering its event stream to the console."""
    t = get_theme()
    events = EventBus()
    orchestrator = PipelineOrchestrator(events=events, selector=RandomSelector(seed))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(complete_style=t.progress_complete, style=t.progress_incomplete),
        TextColumn("{task.percentage:>5.1f}%"),
        console=console,
        transient=True,
    ) as progress:
        tasks: Dict[str, TaskID] = {}

        def on_event(event: PipelineEvent) -> None:
            if isinstance(event, LogEvent):
                if event.severity == Severity.DEBUG and not verbose:
                    return
                progress.console.print(Text(event.message, style=t.for_severity(event.severity)))
            elif isinstance(event, ProgressEvent):
                task_id = tasks.get(event.operation)
                if task_id is None:
                    task_id = progress.add_task(event.operation, total=100)
                    tasks[event.operation] = task_id
                progress.update(task_id, completed=event.percent)
                if event.percent >= 100:
                    progress.remove_task(task_id)
                    del tasks[event.operation]

        events.add_listener(on_event)

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.stop)
            handles_sigint = True
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            handles_sigint = False

        try:
            return await orchestrator.generate_videos(product_dir, count)
        finally:
            if handles_sigint:
                loop.remove_signal_handler(signal.SIGINT)
            events.remove_listener(on_event)


def print_summary(result: BatchResult) -> None:
    t = get_theme()
    table = Table(title=f"Batch: {result.product_dir.name}", box=box.ROUNDED)
    table.add_column("#", style=t.label)
    table.add_column("Result")
    table.add_column("Detail", style=t.dimmed)

    for path in result.completed:
        table.add_row(path.name.split("--")[0], f"[{t.success}]✓ done[/]", str(path))
    for failure in result.failed:
        first_line = (failure.error.splitlines() or [""])[0]
        table.add_row(str(failure.index), f"[{t.error}]✗ failed[/]", Text(first_line))

    console.print(table)
    if result.cancelled:
        console.print(f"[{t.warning}]Stopped after {result.attempted} of {result.requested} video(s)[/]")


@click.command()
@click.argument("product_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--count", "-n", default=1, show_default=True, type=click.IntRange(min=1),
              help="Number of videos to generate")
@click.option("--seed", type=int, default=None, help="Seed for reproducible asset selection")
@click.option("--verbose", "-v", is_flag=True, help="Show ffmpeg commands and debug lines")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also write the full log to this file")
@click.option("--theme", type=click.Choice(list_themes()), default=get_default_theme_name,
              help="Console color theme")
def generate_cmd(product_dir: Path, count: int, seed: Optional[int], verbose: bool,
                 log_file: Optional[Path], theme: str):
    """
    Generate finished videos from a product directory.

    PRODUCT_DIR holds scene folders A, B, C... with .mp3 narration and .mp4
    footage, plus an optional .png watermark and .mp3 background music.
    Results go to PRODUCT_DIR/成品/NNN--<product>.mp4.

    Press Ctrl-C to stop after the video currently being made.

    Examples:

        scene-stitcher generate ./products/teapot -n 5

        scene-stitcher generate ./products/teapot --seed 42 --verbose
    """
    set_theme(theme)
    handler = configure_file_logging(log_file) if log_file else None

    try:
        result = asyncio.run(run_batch(product_dir, count, seed=seed, verbose=verbose))
    finally:
        if handler:
            logging.getLogger().removeHandler(handler)
            handler.close()
    print_summary(result)

    if result.failed and not result.completed:
        raise SystemExit(1)
