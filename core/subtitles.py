"""
Subtitle synthesis from narration timing.

Each scene contributes one cue whose text is the narration file name and
whose length follows the narration. Cues are laid end to end with a fixed
gap: the first starts at GAP, every later one starts GAP after the previous
cue ends, and each ends at start + duration - GAP.
"""

from datetime import timedelta
from typing import Iterable, List, Tuple

import srt

from core.models.pipeline import SubtitleCue

GAP = 0.2


def build_cues(items: Iterable[Tuple[str, float]], gap: float = GAP) -> List[SubtitleCue]:
    """Lay out (text, duration) pairs as consecutive cues."""
    cues = []
    current = 0.0
    for text, duration in items:
        start = current + gap
        end = start + duration - gap
        cues.append(SubtitleCue(text=text, start=start, end=end))
        current = end
    return cues


def format_timestamp(seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm)."""
    return srt.timedelta_to_srt_timestamp(timedelta(milliseconds=round(seconds * 1000)))


def compose(cues: Iterable[SubtitleCue]) -> str:
    """
    Render cues as an SRT document.

    Cues with no text or no positive length are left out of the document;
    the timing of the remaining cues is unaffected.
    """
    subs = [
        srt.Subtitle(
            index=i,
            start=timedelta(milliseconds=round(cue.start * 1000)),
            end=timedelta(milliseconds=round(cue.end * 1000)),
            content=cue.text,
        )
        for i, cue in enumerate(cues, start=1)
    ]
    return srt.compose(subs)


def synthesize(items: Iterable[Tuple[str, float]], gap: float = GAP) -> str:
    """Build the complete subtitle track for a sequence of (text, duration) pairs."""
    return compose(build_cues(items, gap=gap))
