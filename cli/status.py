"""System status command"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from core.config import ToolPaths, resolve_tool_paths
from core.process_runner import tool_version
from cli.theme import get_theme


console = Console()


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_cmd(as_json: bool):
    """Show which media tools will be used and whether they run"""

    status = get_status_dict()

    if as_json:
        import json
        click.echo(json.dumps(status, indent=2, ensure_ascii=False))
        return

    t = get_theme()
    console.print(Panel.fit(
        f"[{t.header}]Scene Stitcher[/]\n"
        "Product Video Assembly Pipeline",
        border_style=t.panel_border
    ))

    tool_table = Table(title="Media Tools", box=box.ROUNDED)
    tool_table.add_column("Tool", style=t.label)
    tool_table.add_column("Path", style=t.value)
    tool_table.add_column("Status")

    for name in ("ffmpeg", "ffprobe"):
        info = status["tools"][name]
        if info["version"]:
            state = f"[green]✓ {info['version']}[/green]"
        else:
            state = "[red]✗ Not runnable[/red]"
        tool_table.add_row(name, info["path"], state)

    fonts = status["fonts_dir"]
    tool_table.add_row(
        "fonts",
        fonts or "—",
        "[green]✓ Found[/green]" if fonts else "[dim]Using system fonts[/dim]",
    )

    console.print(tool_table)

    if not all(status["tools"][name]["version"] for name in ("ffmpeg", "ffprobe")):
        console.print(
            "\n[yellow]Install ffmpeg, put it in ./resources, "
            "or set STITCHER_FFMPEG_PATH / STITCHER_FFPROBE_PATH.[/yellow]"
        )


def get_status_dict(tools: Optional[ToolPaths] = None) -> dict:
    """Get status as dictionary for JSON output"""
    tools = tools or resolve_tool_paths()
    ffmpeg_version, ffprobe_version = asyncio.run(_versions(tools))

    return {
        "tools": {
            "ffmpeg": {"path": tools.ffmpeg, "version": ffmpeg_version},
            "ffprobe": {"path": tools.ffprobe, "version": ffprobe_version},
        },
        "fonts_dir": str(tools.fonts_dir) if tools.fonts_dir else None,
    }


async def _versions(tools: ToolPaths):
    return await asyncio.gather(tool_version(tools.ffmpeg), tool_version(tools.ffprobe))
