"""
Product directory scanning and asset selection.

A product directory holds one folder per scene, named by a single uppercase
letter (A, B, C, ...), each with narration audio and backdrop video files.
Optional watermark images and background music sit at the product root.
Finished videos are numbered NNN--<product>.mp4 in the output folder.
"""

import random
import re
from pathlib import Path
from typing import List, Optional, Sequence, Union

PathLike = Union[str, Path]

SCENE_DIR_RE = re.compile(r"^[A-Z]$")
OUTPUT_PREFIX_RE = re.compile(r"^\s*(\d+)")
OUTPUT_SEPARATOR = "--"


class AssetSelector:
    """Strategy for picking one asset out of several candidates."""

    def choose(self, candidates: Sequence[Path]) -> Path:
        raise NotImplementedError


class RandomSelector(AssetSelector):
    """Uniform random choice (optionally seeded for reproducible batches)."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def choose(self, candidates: Sequence[Path]) -> Path:
        return self._random.choice(list(candidates))


class FirstSelector(AssetSelector):
    """Always the first candidate in name order."""

    def choose(self, candidates: Sequence[Path]) -> Path:
        return candidates[0]


def list_scene_dirs(product_dir: PathLike) -> List[Path]:
    """Scene folders of a product directory, in name order."""
    return sorted(
        (p for p in Path(product_dir).iterdir() if p.is_dir() and SCENE_DIR_RE.match(p.name)),
        key=lambda p: p.name,
    )


def list_files(directory: PathLike, extension: str) -> List[Path]:
    """Files directly inside `directory` with the given extension (case-insensitive)."""
    extension = extension.lower()
    return sorted(
        (p for p in Path(directory).iterdir() if p.is_file() and p.name.lower().endswith(extension)),
        key=lambda p: p.name,
    )


def pick_file(directory: PathLike, extension: str, selector: AssetSelector) -> Optional[Path]:
    """Pick one matching file, or None when the folder has none."""
    candidates = list_files(directory, extension)
    if not candidates:
        return None
    return selector.choose(candidates)


def next_output_number(output_dir: PathLike) -> int:
    """One more than the highest numeric prefix among existing outputs (1 if none)."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return 1
    highest = 0
    for entry in output_dir.iterdir():
        match = OUTPUT_PREFIX_RE.match(entry.name.split(OUTPUT_SEPARATOR)[0])
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def output_filename(number: int, product_name: str) -> str:
    return f"{number:03d}{OUTPUT_SEPARATOR}{product_name}.mp4"


def next_output_path(output_dir: PathLike, product_name: str) -> Path:
    """Path for the next finished video in `output_dir`."""
    return Path(output_dir) / output_filename(next_output_number(output_dir), product_name)
