"""Subtitles command - preview the subtitle track of a product directory"""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape

from core.assets import FirstSelector
from core.errors import InspectionError
from core.pipeline import PipelineOrchestrator
from core.subtitles import GAP, synthesize

console = Console()


async def collect_items(orchestrator: PipelineOrchestrator, product_dir: Path) -> List[Tuple[str, float]]:
    """(text, narration duration) for each usable scene, in scene order."""
    items = []
    for scene in orchestrator.select_scenes(product_dir):
        duration = await orchestrator.inspector.duration(scene.audio_path)
        items.append((scene.subtitle_text, duration))
    return items


@click.command()
@click.argument("product_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the SRT file here instead of printing it")
@click.option("--gap", type=float, default=GAP, show_default=True, help="Seconds between cues")
def subtitles_cmd(product_dir: Path, output: Optional[Path], gap: float):
    """
    Build the subtitle track a product directory would get.

    Uses the first narration file (by name) of every scene folder, so the
    result is deterministic. Nothing is rendered.
    """
    orchestrator = PipelineOrchestrator(selector=FirstSelector())

    try:
        items = asyncio.run(collect_items(orchestrator, product_dir))
    except InspectionError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise SystemExit(1)

    if not items:
        console.print("[yellow]No usable scene folders (A, B, C...) found[/yellow]")
        raise SystemExit(1)

    document = synthesize(items, gap=gap)

    if output:
        output.write_text(document, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {len(items)} cue(s) to {output}")
    else:
        console.print(document, markup=False, highlight=False)
