"""
FFmpeg video encoder and PNG frame export.

Pipes raw RGB frames to ffmpeg via stdin. No intermediate files:
frames go straight from numpy arrays to the encoder.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from PIL import Image

logger = logging.getLogger(__name__)

# Quality presets: (preset, crf, pix_fmt)
QUALITY_PRESETS = {
    "high": ("slow", "18", "yuv444p"),
    "medium": ("medium", "23", "yuv420p"),
    "fast": ("ultrafast", "28", "yuv420p"),
}


def build_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int,
    quality: str = "medium",
) -> list:
    """Build the ffmpeg command line for a raw RGB stdin stream."""
    preset, crf, pix_fmt = QUALITY_PRESETS.get(quality, QUALITY_PRESETS["medium"])
    return [
        "ffmpeg", "-y",
        # Raw video input from pipe
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
        # Video encoding
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", crf,
        "-pix_fmt", pix_fmt,
        str(output_path),
    ]


def encode_video(
    frame_iterator: Iterator,
    output_path: Path,
    width: int = 800,
    height: int = 400,
    fps: int = 60,
    quality: str = "medium",
    total_frames: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Path:
    """
    Encode frames to MP4.

    Args:
        frame_iterator: Yields (H, W, 3) uint8 numpy arrays.
        output_path: Output MP4 path.
        width: Frame width.
        height: Frame height.
        fps: Frames per second.
        quality: "high", "medium", or "fast".
        total_frames: Total frame count for progress reporting.
        progress_callback: Optional callback(current_frame, total_frames).

    Returns:
        Path to the output file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_command(output_path, width, height, fps, quality)
    logger.info("Encoding %s (%dx%d @ %dfps, %s)", output_path, width, height, fps, quality)

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )

    frame_count = 0
    try:
        for frame in frame_iterator:
            proc.stdin.write(frame.tobytes())
            frame_count += 1

            if progress_callback and total_frames:
                progress_callback(frame_count, total_frames)

    except BrokenPipeError:
        logger.warning("ffmpeg closed its input after %d frames", frame_count)
    finally:
        if proc.stdin:
            proc.stdin.close()

    proc.wait()

    if proc.returncode != 0:
        stderr = proc.stderr.read().decode("utf-8", errors="replace")
        error_lines = [
            line for line in stderr.split("\n")
            if "error" in line.lower() or "invalid" in line.lower()
        ]
        error_msg = "\n".join(error_lines[-5:]) if error_lines else stderr[-500:]
        raise RuntimeError(
            f"ffmpeg exited with code {proc.returncode}: {error_msg}"
        )

    return output_path


def save_frames(
    frames: Iterable,
    directory: Path,
    prefix: str = "frame",
) -> int:
    """
    Write frames as numbered PNG files.

    Returns:
        Number of frames written.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    count = 0
    for count, frame in enumerate(frames, start=1):
        Image.fromarray(frame).save(directory / f"{prefix}_{count - 1:05d}.png")

    logger.info("Wrote %d frames to %s", count, directory)
    return count
