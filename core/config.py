"""Pipeline configuration using pydantic-settings

External tool locations are resolved once at startup into a ToolPaths value
that is passed explicitly to the orchestrator, so tests can swap in fakes.
"""

import os
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from core.models.render import RenderConfig, SubtitleStyle


class StitcherSettings(BaseSettings):
    """Settings loaded from STITCHER_* environment variables or .env"""

    # External tools (None = auto-detect)
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    resources_dir: Optional[str] = None
    fonts_dir: Optional[str] = None

    # Product directory layout
    output_dir_name: str = "成品"
    audio_extension: str = ".mp3"
    video_extension: str = ".mp4"
    watermark_extension: str = ".png"
    music_extension: str = ".mp3"

    # Mixing / overlay
    bgm_volume: float = Field(0.15, ge=0.0, le=4.0)
    watermark_position: str = "W-w-10:H-h-10"

    # Subtitle style overrides
    play_res_x: int = 1080
    play_res_y: int = 1920
    font_name: str = "SourceHanSansCN-Bold"
    font_size: int = Field(55, gt=0)
    primary_colour: str = "&HFFFFFF"
    outline: int = Field(3, ge=0)
    outline_colour: str = "&H4100FF"
    margin_v: int = 300

    # Encoding
    preset: str = "fast"
    crf: int = Field(23, ge=0, le=51)

    class Config:
        env_prefix = "STITCHER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def subtitle_style(self) -> SubtitleStyle:
        return SubtitleStyle(
            play_res_x=self.play_res_x,
            play_res_y=self.play_res_y,
            font_name=self.font_name,
            font_size=self.font_size,
            primary_colour=self.primary_colour,
            outline=self.outline,
            outline_colour=self.outline_colour,
            margin_v=self.margin_v,
        )

    def render_config(self) -> RenderConfig:
        return RenderConfig(preset=self.preset, crf=self.crf)


@lru_cache(maxsize=1)
def get_settings() -> StitcherSettings:
    """Process-wide settings instance"""
    return StitcherSettings()


@dataclass(frozen=True)
class ToolPaths:
    """Resolved locations of the external media tools"""
    ffmpeg: str
    ffprobe: str
    fonts_dir: Optional[Path] = None


# Common install locations checked after PATH on Windows
WINDOWS_TOOL_DIRS = [
    r"C:\ffmpeg\bin",
    r"C:\Program Files\ffmpeg\bin",
    r"C:\Program Files (x86)\ffmpeg\bin",
]


def _resources_dir(settings: StitcherSettings) -> Path:
    if settings.resources_dir:
        return Path(settings.resources_dir)
    return Path.cwd() / "resources"


def _find_tool(name: str, explicit: Optional[str], resources: Path) -> str:
    """Find an executable: explicit setting, bundled resources, PATH, known dirs."""
    if explicit:
        return explicit

    exe = f"{name}.exe" if os.name == "nt" else name

    bundled = resources / exe
    if bundled.exists():
        return str(bundled)

    found = shutil.which(name)
    if found:
        return found

    if os.name == "nt":
        for directory in WINDOWS_TOOL_DIRS:
            candidate = os.path.join(directory, exe)
            if os.path.exists(candidate):
                return candidate

    # Not found - spawning will fail and be reported by the runner
    return name


def _find_fonts_dir(settings: StitcherSettings, resources: Path) -> Optional[Path]:
    if settings.fonts_dir:
        return Path(settings.fonts_dir)
    bundled = resources / "Fonts"
    if bundled.is_dir():
        return bundled
    return None


def resolve_tool_paths(settings: Optional[StitcherSettings] = None) -> ToolPaths:
    """Resolve ffmpeg, ffprobe and the subtitle fonts directory once."""
    settings = settings or get_settings()
    resources = _resources_dir(settings)
    return ToolPaths(
        ffmpeg=_find_tool("ffmpeg", settings.ffmpeg_path, resources),
        ffprobe=_find_tool("ffprobe", settings.ffprobe_path, resources),
        fonts_dir=_find_fonts_dir(settings, resources),
    )


def setting_rows(settings: StitcherSettings) -> List[tuple]:
    """(name, value, source) rows for display"""
    rows = []
    for name in StitcherSettings.model_fields:
        source = "environment" if name in settings.model_fields_set else "default"
        rows.append((name, getattr(settings, name), source))
    return rows
