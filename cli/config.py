"""Configuration commands"""

import click
from rich.console import Console
from rich.table import Table
from rich import box
from pathlib import Path

from core.config import StitcherSettings, setting_rows
from cli.theme import get_theme

console = Console()

ENV_TEMPLATE = """# Scene Stitcher configuration
# Every setting can also be given as an environment variable.

# External tools (auto-detected when unset)
# STITCHER_FFMPEG_PATH=/usr/local/bin/ffmpeg
# STITCHER_FFPROBE_PATH=/usr/local/bin/ffprobe
# STITCHER_RESOURCES_DIR=./resources
# STITCHER_FONTS_DIR=./resources/Fonts

# Output
# STITCHER_OUTPUT_DIR_NAME=成品
# STITCHER_BGM_VOLUME=0.15
# STITCHER_WATERMARK_POSITION=W-w-10:H-h-10

# Subtitles
# STITCHER_FONT_NAME=SourceHanSansCN-Bold
# STITCHER_FONT_SIZE=55
# STITCHER_MARGIN_V=300
"""


@click.group()
def config_cmd():
    """Configuration management"""
    pass


@config_cmd.command()
def show():
    """Show current configuration"""

    settings = StitcherSettings()
    t = get_theme()

    table = Table(title="Configuration", box=box.ROUNDED, border_style=t.panel_border)
    table.add_column("Setting", style=t.label)
    table.add_column("Value", style=t.value)
    table.add_column("Source")

    for name, value, source in setting_rows(settings):
        env_name = f"STITCHER_{name.upper()}"
        shown = "[dim]auto[/dim]" if value is None else str(value)
        source_text = "[green]environment[/green]" if source == "environment" else "[dim]default[/dim]"
        table.add_row(f"{name} ({env_name})", shown, source_text)

    console.print(table)

    if not Path(".env").exists():
        console.print("\n[yellow]No .env file found. Run 'scene-stitcher config init' to create one.[/yellow]")


@config_cmd.command()
@click.option("--force", is_flag=True, help="Overwrite an existing .env")
def init(force: bool):
    """Create a commented .env template"""

    env_file = Path(".env")
    if env_file.exists() and not force:
        console.print("[yellow].env already exists (use --force to overwrite)[/yellow]")
        return

    env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {env_file}")
