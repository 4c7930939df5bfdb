"""Frame extraction stage: evenly spaced stills named by their timecode.

The sampling cadence is derived from a target frame count and the video
duration; ffmpeg is invoked once with that rate. Its output count follows its
own rounding, so the target is approximate. After extraction each frame is
renamed to carry its nominal offset (`frame_<index>_<HH>_<MM>_<SS>.jpg`), which
lets later steps recover frame times from file names alone.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path

from vidpost.errors import NotFoundError, ValidationError
from vidpost.utils.process import run_streaming

logger = logging.getLogger(__name__)

DEFAULT_TARGET_FRAMES = 100
IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png"}

_RAW_PREFIX = "raw_"
_RAW_NAME = re.compile(r"^raw_(?P<seq>\d+)\.jpg$", re.IGNORECASE)
_FRAME_NAME = re.compile(
    r"^frame_(?:(?P<index>\d+)_)?(?P<h>\d{2,})_(?P<m>\d{2})_(?P<s>\d{2})\.(?:jpe?g|png)$"
)


@dataclass(frozen=True)
class Frame:
    """One extracted still image and its nominal capture offset."""

    path: Path
    offset: float  # Nominal capture offset in seconds
    index: int = 0  # Position in the extraction sequence

    @property
    def timecode(self) -> str:
        """Offset encoded as zero-padded `HH_MM_SS`."""
        return format_timecode(self.offset)


@dataclass(frozen=True)
class ExtractionPlan:
    """Everything needed to run and post-process one extraction."""

    fps: float
    interval: float
    output_dir: Path
    command: list[str]


def compute_cadence(duration: float, target_frames: int) -> tuple[float, float]:
    """Return `(fps, interval)` that yields `target_frames` over `duration`.

    Raises:
        ValidationError: If duration or target_frames is not positive.
    """
    if duration <= 0:
        raise ValidationError(f"Duration must be positive, got {duration}")
    if target_frames <= 0:
        raise ValidationError(f"Target frame count must be positive, got {target_frames}")

    return target_frames / duration, duration / target_frames


def format_timecode(seconds: float) -> str:
    """Format an offset as `HH_MM_SS`, truncating sub-second precision."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}_{minutes:02d}_{secs:02d}"


def timecode_to_seconds(name: str) -> float | None:
    """Recover the offset from a frame file name, or None if it has none."""
    match = _FRAME_NAME.match(Path(name).name)
    if not match:
        return None
    return float(int(match["h"]) * 3600 + int(match["m"]) * 60 + int(match["s"]))


def _clear_frames(output_dir: Path) -> int:
    removed = 0
    for path in output_dir.iterdir():
        if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES and (
            path.name.startswith(_RAW_PREFIX) or _FRAME_NAME.match(path.name)
        ):
            path.unlink()
            removed += 1
    return removed


def prepare_extraction(
    video: Path,
    output_dir: Path,
    duration: float,
    target_frames: int = DEFAULT_TARGET_FRAMES,
    ffmpeg: str = "ffmpeg",
    quality: int = 2,
) -> ExtractionPlan:
    """Validate inputs, prepare the frame directory and build the ffmpeg command.

    Frames left by an earlier extraction in `output_dir` are removed.

    Raises:
        ValidationError: If duration or target_frames is not positive.
    """
    fps, interval = compute_cadence(duration, target_frames)

    output_dir.mkdir(parents=True, exist_ok=True)
    removed = _clear_frames(output_dir)
    if removed:
        logger.info(f"Removed {removed} frames from a previous extraction")

    command = [
        ffmpeg,
        "-hide_banner",
        "-i", str(video),
        "-vf", f"fps={fps}",
        "-q:v", str(quality),  # JPEG quality (2 = high)
        "-y",
        str(output_dir / f"{_RAW_PREFIX}%04d.jpg"),
    ]

    logger.info(
        f"Extraction rate: {fps:.3f} fps, one frame every {interval:.2f}s "
        f"(target {target_frames} frames over {duration:.1f}s)"
    )
    return ExtractionPlan(fps=fps, interval=interval, output_dir=output_dir, command=command)


def collect_frames(output_dir: Path, interval: float) -> list[Frame]:
    """Rename decoder output to timecoded names and return the frames in order.

    Raises:
        NotFoundError: If the decoder produced no frames.
    """
    # ffmpeg's %04d widens past 9999, so order by the decoded sequence number
    numbered = []
    for path in output_dir.iterdir():
        match = _RAW_NAME.match(path.name)
        if match:
            numbered.append((int(match["seq"]), path))
    raw = [path for _, path in sorted(numbered)]
    if not raw:
        raise NotFoundError(f"No frames were extracted into {output_dir}")

    frames: list[Frame] = []
    for i, path in enumerate(raw):
        offset = i * interval
        target = output_dir / f"frame_{i:04d}_{format_timecode(offset)}.jpg"
        path.replace(target)
        frames.append(Frame(path=target, offset=offset, index=i))

    logger.info(f"Extracted {len(frames)} frames into {output_dir}")
    return frames


def load_frames(frames_dir: Path) -> list[Frame]:
    """Load previously extracted frames from a directory, in sequence order.

    Only timecoded frame names are loaded; offsets come from the timecode.
    Other images in the directory, such as copied selections, are ignored.

    Raises:
        NotFoundError: If the directory does not exist.
    """
    if not frames_dir.is_dir():
        raise NotFoundError(f"Frames directory not found: {frames_dir}")

    frames: list[Frame] = []
    for path in frames_dir.iterdir():
        match = _FRAME_NAME.match(path.name)
        if not match or not path.is_file():
            continue
        index = int(match["index"]) if match["index"] else 0
        frames.append(Frame(path=path, offset=timecode_to_seconds(path.name), index=index))

    frames.sort(key=lambda f: (f.offset, f.index))
    return frames


def extract_frames(
    video: Path,
    output_dir: Path,
    duration: float,
    target_frames: int = DEFAULT_TARGET_FRAMES,
    ffmpeg: str = "ffmpeg",
    timeout: float | None = None,
) -> list[Frame]:
    """Extract about `target_frames` evenly spaced frames from a video.

    Args:
        video: Path to the video file.
        output_dir: Directory for the frame images (created if absent).
        duration: Video duration in seconds.
        target_frames: Number of frames to aim for.
        ffmpeg: ffmpeg executable.
        timeout: Seconds ffmpeg may run (None = no limit).

    Returns:
        Frames ordered by offset.

    Raises:
        ValidationError: If duration or target_frames is not positive.
        NotFoundError: If the video does not exist or no frames were written.
        ExternalProcessError: If ffmpeg fails.
    """
    compute_cadence(duration, target_frames)
    if not video.exists():
        raise NotFoundError(f"Video file not found: {video}")

    plan = prepare_extraction(video, output_dir, duration, target_frames, ffmpeg=ffmpeg)

    start_time = time.perf_counter()
    for line in run_streaming(plan.command, timeout=timeout):
        logger.debug(line.rstrip())

    frames = collect_frames(output_dir, plan.interval)
    elapsed = time.perf_counter() - start_time
    logger.info(f"Frame extraction took {elapsed:.2f}s")
    return frames
