"""Integration test: full pipeline against a real ffmpeg

Synthetic footage and tones are generated with ffmpeg's lavfi sources, then
one finished video is produced and probed. Skipped when ffmpeg/ffprobe are
not installed or ffmpeg lacks the subtitles filter (libass).
"""

import shutil
import subprocess
import pytest

from core.assets import FirstSelector
from core.config import StitcherSettings, ToolPaths
from core.media_inspector import MediaInspector
from core.pipeline import PipelineOrchestrator


def _ffmpeg_ready() -> bool:
    if not shutil.which("ffmpeg") or not shutil.which("ffprobe"):
        return False
    filters = subprocess.run(["ffmpeg", "-hide_banner", "-filters"], capture_output=True, text=True)
    return " subtitles " in filters.stdout


pytestmark = [
    pytest.mark.integration,
    pytest.mark.slow,
    pytest.mark.skipif(not _ffmpeg_ready(), reason="ffmpeg with libass not available"),
]


def _lavfi(args, output):
    subprocess.run(["ffmpeg", "-y", "-hide_banner", "-loglevel", "error", *args, str(output)], check=True)


@pytest.fixture
def product_dir(tmp_path):
    product = tmp_path / "teapot"
    for folder, video_seconds in (("A", 1.0), ("B", 4.0)):
        scene = product / folder
        scene.mkdir(parents=True)
        _lavfi(["-f", "lavfi", "-i", f"testsrc=size=360x640:rate=30:duration={video_seconds}",
                "-pix_fmt", "yuv420p"], scene / "clip.mp4")
        _lavfi(["-f", "lavfi", "-i", "sine=frequency=440:duration=2"], scene / f"Scene {folder}.mp3")
    _lavfi(["-f", "lavfi", "-i", "sine=frequency=220:duration=1"], product / "bgm.mp3")
    _lavfi(["-f", "lavfi", "-i", "color=c=red:size=64x64", "-frames:v", "1"], product / "logo.png")
    return product


@pytest.mark.asyncio
async def test_generates_playable_output(product_dir):
    tools = ToolPaths(ffmpeg=shutil.which("ffmpeg"), ffprobe=shutil.which("ffprobe"))
    orchestrator = PipelineOrchestrator(
        tools=tools,
        settings=StitcherSettings(_env_file=None),
        selector=FirstSelector(),
    )

    result = await orchestrator.generate_videos(product_dir, 1)

    assert result.failed == []
    output = result.completed[0]
    assert output.name == "001--teapot.mp4"

    # Two 2s narrations: the clip lasts about 4 seconds
    duration = await MediaInspector(tools.ffprobe).duration(output)
    assert duration == pytest.approx(4.0, abs=0.5)
    assert await MediaInspector(tools.ffprobe).has_audio_stream(output)
    assert [p for p in product_dir.iterdir() if p.name.startswith("temp_")] == []
