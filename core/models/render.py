"""
Render models for FFmpeg stage invocations

These models hold the encoder settings shared by every stage and the
subtitle style burned into the final video.
"""

from dataclasses import dataclass
from typing import List


@dataclass
class RenderConfig:
    """
    Encoder configuration shared by all re-encoding stages.

    Attributes:
        output_width: Scene clip width in pixels
        output_height: Scene clip height in pixels
        output_fps: Scene clip frame rate
        video_codec: Video codec (libx264, libx265, etc.)
        audio_codec: Audio codec (aac, mp3, etc.)
        audio_bitrate: Audio bitrate (e.g., "128k")
        pixel_format: Pixel format (yuv420p for compatibility)
    """
    output_width: int = 720
    output_height: int = 1280
    output_fps: float = 30.0
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    pixel_format: str = "yuv420p"

    # Quality preset (ultrafast, fast, medium, slow, veryslow)
    preset: str = "fast"

    # CRF for quality-based encoding (0-51, lower = better, 23 is default)
    crf: int = 23

    def video_encode_args(self) -> List[str]:
        """Arguments for a full video re-encode."""
        return [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", self.pixel_format,
        ]

    def scale_filter(self) -> str:
        """Filter that normalises frame size and rate so clips concat cleanly."""
        return f"scale={self.output_width}:{self.output_height},fps={self.output_fps:g}"


@dataclass
class SubtitleStyle:
    """
    Style of the burned-in subtitles (ASS override fields).

    Attributes:
        play_res_x: Subtitle canvas width
        play_res_y: Subtitle canvas height
        font_name: Font family looked up in the fonts directory
        font_size: Font size on the subtitle canvas
        primary_colour: Text colour (&HBBGGRR)
        outline: Outline width
        outline_colour: Outline colour (&HBBGGRR)
        alignment: ASS numpad alignment (2 = bottom centre)
        margin_l: Left margin
        margin_r: Right margin
        margin_v: Vertical margin from the bottom
    """
    play_res_x: int = 1080
    play_res_y: int = 1920
    font_name: str = "SourceHanSansCN-Bold"
    font_size: int = 55
    primary_colour: str = "&HFFFFFF"
    outline: int = 3
    outline_colour: str = "&H4100FF"
    alignment: int = 2
    margin_l: int = 20
    margin_r: int = 20
    margin_v: int = 300

    @property
    def original_size(self) -> str:
        return f"{self.play_res_x}x{self.play_res_y}"

    def force_style(self) -> str:
        """Render the comma-separated force_style string for the subtitles filter."""
        return ",".join([
            f"PlayResX={self.play_res_x}",
            f"PlayResY={self.play_res_y}",
            f"Fontname={self.font_name}",
            f"Fontsize={self.font_size}",
            f"PrimaryColour={self.primary_colour}",
            f"Outline={self.outline}",
            f"OutlineColour={self.outline_colour}",
            f"Alignment={self.alignment}",
            f"MarginL={self.margin_l}",
            f"MarginR={self.margin_r}",
            f"MarginV={self.margin_v}",
        ])
