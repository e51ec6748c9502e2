"""Scene Stitcher CLI"""

import click
from dotenv import load_dotenv
from .generate import generate_cmd
from .probe import probe_cmd
from .subtitles import subtitles_cmd
from .split import split_cmd
from .status import status_cmd
from .config import config_cmd

# Load .env file at CLI startup
load_dotenv()


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Scene Stitcher - Product Video Assembly Pipeline

    \b
    Quick Start:
      scene-stitcher status
      scene-stitcher generate ./products/teapot -n 3

    \b
    Commands:
      generate   Assemble finished videos from a product directory
      subtitles  Preview the subtitle track for a product directory
      probe      Show media durations
      split      Cut a long video into fixed-length parts
      status     Show ffmpeg/ffprobe availability
      config     Show configuration
    """
    pass


# Production commands
main.add_command(generate_cmd, name="generate")
main.add_command(subtitles_cmd, name="subtitles")

# Media utilities
main.add_command(probe_cmd, name="probe")
main.add_command(split_cmd, name="split")

# Status and info commands
main.add_command(status_cmd, name="status")
main.add_command(config_cmd, name="config")


if __name__ == "__main__":
    main()
