"""Probe command - report media durations"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich import box

from core.config import resolve_tool_paths
from core.errors import InspectionError
from core.media_inspector import MediaInspector

console = Console()


@dataclass
class ProbeRow:
    path: Path
    duration: Optional[float] = None
    has_audio: bool = False
    error: Optional[str] = None


async def probe_files(inspector: MediaInspector, files: List[Path]) -> List[ProbeRow]:
    rows = []
    for path in files:
        try:
            duration = await inspector.duration(path)
        except InspectionError as e:
            rows.append(ProbeRow(path=path, error=e.reason))
            continue
        has_audio = await inspector.has_audio_stream(path)
        rows.append(ProbeRow(path=path, duration=duration, has_audio=has_audio))
    return rows


@click.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
def probe_cmd(files: Tuple[Path, ...]):
    """Show the duration of one or more media files"""
    tools = resolve_tool_paths()
    inspector = MediaInspector(tools.ffprobe)
    rows = asyncio.run(probe_files(inspector, list(files)))

    table = Table(title="Media", box=box.ROUNDED)
    table.add_column("File", style="cyan")
    table.add_column("Duration")
    table.add_column("Audio")

    for row in rows:
        if row.error:
            table.add_row(str(row.path), "[red]✗ error[/red]", f"[dim]{escape(row.error)}[/dim]")
        else:
            table.add_row(str(row.path), f"{row.duration:.3f}s", "yes" if row.has_audio else "no")

    console.print(table)

    if any(row.error for row in rows):
        raise SystemExit(1)
