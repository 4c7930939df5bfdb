"""Frame selection: pick representative frames by time and quality.

Two modes:
- Temporal: for a target time, score the frames inside a tolerance window and
  take the best; when the window is empty, take the frame nearest in time.
- Even coverage: split the sequence into K contiguous groups and take the best
  frame of each group. Used when no per-section target times exist.

Ties always go to the earliest frame. Scoring is only done for the frames a
call actually compares, and each frame is scored at most once per call.
"""

from __future__ import annotations

import logging
import math
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

from vidpost.errors import PreconditionError, ValidationError
from vidpost.stages.frames import Frame
from vidpost.stages.quality import ScoredFrame, score_frame

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 120.0

Scorer = Callable[[Frame], ScoredFrame]


def _require_frames(frames: Sequence[Frame]) -> None:
    if not frames:
        raise PreconditionError("Frame selection needs at least one frame")


def _best_scored(frames: Sequence[Frame], scorer: Scorer) -> ScoredFrame:
    scored = [scorer(frame) for frame in frames]
    # Ties go to the earliest frame
    return max(scored, key=lambda s: (s.score, -s.frame.offset))


def find_nearest_frame(frames: Sequence[Frame], target: float) -> Frame:
    """Return the frame whose offset is closest to `target`.

    Raises:
        PreconditionError: If `frames` is empty.
    """
    _require_frames(frames)
    return min(frames, key=lambda f: (abs(f.offset - target), f.offset))


def frames_in_window(frames: Sequence[Frame], target: float, window: float) -> list[Frame]:
    """Frames whose offset lies within `[target - window, target + window]`."""
    return [f for f in frames if target - window <= f.offset <= target + window]


def select_frame(
    frames: Sequence[Frame],
    target: float,
    window: float = DEFAULT_WINDOW_SECONDS,
    scorer: Scorer = score_frame,
) -> Frame:
    """Pick the best frame for a target time.

    Args:
        frames: Candidate frames (any order).
        target: Target time in seconds.
        window: Tolerance in seconds on either side of the target.
        scorer: Quality scorer; defaults to the sharpness/exposure scorer.

    Returns:
        The highest-scoring frame within the window, or the nearest frame
        in time when the window holds none.

    Raises:
        PreconditionError: If `frames` is empty.
        ValidationError: If `window` is negative.
    """
    _require_frames(frames)
    if window < 0:
        raise ValidationError(f"Window must not be negative, got {window}")

    candidates = frames_in_window(frames, target, window)
    if not candidates:
        nearest = find_nearest_frame(frames, target)
        logger.info(
            f"No frames within {window:.0f}s of {target:.1f}s, "
            f"using nearest {nearest.path.name}"
        )
        return nearest

    best = _best_scored(candidates, scorer)
    logger.info(
        f"Selected {best.frame.path.name} for {target:.1f}s from {len(candidates)} candidates "
        f"(score={best.score:.3f}, sharp={best.sharpness:.3f}, bright={best.brightness:.2f})"
    )
    return best.frame


def select_evenly(
    frames: Sequence[Frame],
    count: int,
    scorer: Scorer = score_frame,
) -> list[Frame]:
    """Pick the best frame from each of `count` contiguous groups.

    Groups hold `ceil(len(frames) / count)` frames; the last may be shorter.
    With fewer frames than groups, trailing groups are empty and skipped, so
    the result can be shorter than `count`.

    Raises:
        PreconditionError: If `frames` is empty.
        ValidationError: If `count` is not positive.
    """
    _require_frames(frames)
    if count <= 0:
        raise ValidationError(f"Selection count must be positive, got {count}")

    ordered = sorted(frames, key=lambda f: f.offset)
    group_size = math.ceil(len(ordered) / count)
    selected: list[Frame] = []

    for g in range(count):
        group = ordered[g * group_size:(g + 1) * group_size]
        if not group:
            logger.warning(f"Only {len(ordered)} frames for {count} groups, group {g + 1} is empty")
            continue

        best = _best_scored(group, scorer)
        selected.append(best.frame)
        logger.info(
            f"Group {g + 1}: {best.frame.path.name} "
            f"(score={best.score:.3f}, sharp={best.sharpness:.3f}, bright={best.brightness:.2f})"
        )

    return selected


def default_selection_dir(frames_dir: Path) -> Path:
    """Sibling directory for copied picks: `talk_frames` -> `talk_selected`."""
    stem = frames_dir.name
    if stem.endswith("_frames"):
        stem = stem[: -len("_frames")]
    return frames_dir.parent / f"{stem}_selected"


def copy_selected(frames: Sequence[Frame], output_dir: Path) -> list[Path]:
    """Copy frames to `output_dir` as `selected_<n>.<ext>`, numbered from 1."""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: list[Path] = []
    for i, frame in enumerate(frames, start=1):
        target = output_dir / f"selected_{i}{frame.path.suffix}"
        shutil.copyfile(frame.path, target)
        paths.append(target)
    return paths
