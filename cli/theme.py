"""CLI theming system for color customization"""

import os
from dataclasses import dataclass
from typing import List

from core.events import Severity


@dataclass
class Theme:
    """CLI color theme configuration"""

    # Primary elements
    header: str = "bold blue"
    success: str = "bold green"
    warning: str = "yellow"
    error: str = "bold red"
    info: str = "white"
    debug: str = "dim"

    # Panels/boxes
    panel_border: str = "blue"

    # Progress bars
    progress_complete: str = "green"
    progress_incomplete: str = "dim white"

    # Content
    label: str = "cyan"
    value: str = "white"
    dimmed: str = "dim"

    def for_severity(self, severity: Severity) -> str:
        """Style used for a log line of the given severity"""
        return {
            Severity.DEBUG: self.debug,
            Severity.INFO: self.info,
            Severity.SUCCESS: self.success,
            Severity.WARNING: self.warning,
            Severity.ERROR: self.error,
        }[severity]


# Preset themes
THEMES = {
    "default": Theme(),

    "ocean": Theme(
        header="bold cyan",
        panel_border="cyan",
        progress_complete="cyan",
        label="blue",
    ),

    "mono": Theme(
        header="bold white",
        success="bold white",
        warning="white",
        error="bold white",
        panel_border="white",
        progress_complete="white",
        progress_incomplete="dim white",
        label="bold white",
        value="white",
        dimmed="dim white",
    ),
}

# Active theme (can be changed at runtime)
_current_theme: Theme = THEMES["default"]


def get_theme() -> Theme:
    """Get the current active theme"""
    return _current_theme


def set_theme(name: str) -> None:
    """Set the active theme by name"""
    global _current_theme
    if name not in THEMES:
        raise ValueError(f"Unknown theme: {name}. Available: {list(THEMES.keys())}")
    _current_theme = THEMES[name]


def list_themes() -> List[str]:
    """List available theme names"""
    return list(THEMES.keys())


def get_default_theme_name() -> str:
    """Get default theme name from environment or 'default'"""
    return os.getenv("STITCHER_THEME", "default")
