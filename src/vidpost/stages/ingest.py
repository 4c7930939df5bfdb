"""Ingestion stage: file validation and duration probing.

This stage handles:
- Video format validation
- Metadata extraction via ffprobe
"""

from __future__ import annotations

import json
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from vidpost.errors import ExternalProcessError, NotFoundError, ParseError, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_VIDEO_FORMATS = {".mp4", ".mov", ".avi", ".mkv", ".webm"}

FFMPEG_INSTALL_HINT = (
    "Please install FFmpeg:\n"
    "  Ubuntu/Debian: sudo apt install ffmpeg\n"
    "  macOS: brew install ffmpeg\n"
    "  Windows: choco install ffmpeg"
)


@dataclass
class ProbeResult:
    """Raw probe result from ffprobe."""

    duration: float
    has_video: bool
    has_audio: bool


def validate_file(source: Path) -> None:
    """Validate that a video exists and has a supported format.

    Raises:
        NotFoundError: If the file does not exist.
        ValidationError: If the file format is not supported.
    """
    if not source.exists():
        raise NotFoundError(f"Source file not found: {source}")

    suffix = source.suffix.lower()
    if suffix not in SUPPORTED_VIDEO_FORMATS:
        raise ValidationError(
            f"Unsupported format: {suffix}. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_VIDEO_FORMATS))}"
        )


def _run_ffprobe(source: Path, ffprobe: str = "ffprobe", timeout: float = 30) -> dict:
    """Run ffprobe and return parsed JSON output.

    Raises:
        ExternalProcessError: If ffprobe fails or is not installed.
        ParseError: If ffprobe output is not JSON.
    """
    cmd = [
        ffprobe,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(source),
    ]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ExternalProcessError(f"ffprobe not found. {FFMPEG_INSTALL_HINT}")
    except subprocess.TimeoutExpired:
        raise ExternalProcessError(f"ffprobe timed out reading: {source}")

    if result.returncode != 0:
        raise ExternalProcessError(
            f"ffprobe failed: {result.stderr.strip() or f'exit code {result.returncode}'}",
            returncode=result.returncode,
        )

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse ffprobe output: {e}") from e


def _parse_probe_result(data: dict) -> ProbeResult:
    """Parse ffprobe JSON into a ProbeResult."""
    streams = data.get("streams", [])
    format_info = data.get("format", {})

    video_stream = None
    audio_stream = None

    for stream in streams:
        codec_type = stream.get("codec_type")
        if codec_type == "video" and video_stream is None:
            video_stream = stream
        elif codec_type == "audio" and audio_stream is None:
            audio_stream = stream

    # Prefer container duration, fall back to the streams
    duration = 0.0
    if "duration" in format_info:
        duration = float(format_info["duration"])
    elif video_stream and "duration" in video_stream:
        duration = float(video_stream["duration"])
    elif audio_stream and "duration" in audio_stream:
        duration = float(audio_stream["duration"])

    return ProbeResult(
        duration=duration,
        has_video=video_stream is not None,
        has_audio=audio_stream is not None,
    )


def probe_file(source: Path, ffprobe: str = "ffprobe") -> ProbeResult:
    """Probe a media file and return metadata.

    Raises:
        ExternalProcessError: If ffprobe cannot run.
        ParseError: If the probe output is unreadable.
    """
    start_time = time.perf_counter()

    data = _run_ffprobe(source, ffprobe=ffprobe)
    result = _parse_probe_result(data)

    elapsed = time.perf_counter() - start_time
    logger.debug(f"Probed {source.name} in {elapsed:.2f}s")

    return result


def probe_duration(source: Path, ffprobe: str = "ffprobe") -> float:
    """Return the duration of a video in seconds.

    Raises:
        NotFoundError: If the file does not exist.
        ExternalProcessError: If ffprobe cannot run.
        ValidationError: If the file has no video track or no duration.
    """
    if not source.exists():
        raise NotFoundError(f"Video file not found: {source}")

    probe = probe_file(source, ffprobe=ffprobe)
    if not probe.has_video:
        raise ValidationError(f"No video track found in: {source}")
    if probe.duration <= 0:
        raise ValidationError(f"Could not determine a positive duration for: {source}")

    logger.info(f"Video duration: {probe.duration:.1f}s ({source.name})")
    return probe.duration
