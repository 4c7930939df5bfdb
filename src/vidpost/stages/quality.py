"""Frame quality scoring: sharpness and exposure.

Scores are pure functions of the greyscale pixel data, computed in float64
with numpy, so the same image always produces the same numbers.

- brightness: mean intensity normalised to [0, 1]
- sharpness: root mean square of a 4-neighbour Laplacian over interior
  pixels, divided by 255
- score: sharpness scaled by how close brightness is to mid-grey;
  it falls to zero for fully black or fully white frames
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.typing import ArrayLike, NDArray
from PIL import Image

from vidpost.errors import PreconditionError, ValidationError
from vidpost.stages.frames import Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameQuality:
    """Quality measures for a single image."""

    sharpness: float
    brightness: float
    score: float


@dataclass(frozen=True)
class ScoredFrame:
    """A frame together with its quality measures."""

    frame: Frame
    sharpness: float
    brightness: float
    score: float

    @property
    def offset(self) -> float:
        return self.frame.offset


def _as_grid(pixels: ArrayLike, width: int | None) -> NDArray[np.float64]:
    grid = np.asarray(pixels, dtype=np.float64)

    if grid.ndim == 1:
        if width is None or width <= 0:
            raise ValidationError("A flat pixel buffer needs a positive width")
        if grid.size % width:
            raise ValidationError(
                f"Buffer of {grid.size} pixels is not a whole number of rows of width {width}"
            )
        grid = grid.reshape(-1, width)
    elif grid.ndim != 2:
        raise ValidationError(f"Expected a greyscale image, got array of shape {grid.shape}")
    elif width is not None and grid.shape[1] != width:
        raise ValidationError(f"Image width {grid.shape[1]} does not match width={width}")

    return grid


def laplacian_rms(grid: NDArray[np.float64]) -> float:
    """Root mean square of the discrete Laplacian over interior pixels."""
    height, width = grid.shape
    if height < 3 or width < 3:
        return 0.0

    laplacian = (
        -4.0 * grid[1:-1, 1:-1]
        + grid[1:-1, :-2]
        + grid[1:-1, 2:]
        + grid[:-2, 1:-1]
        + grid[2:, 1:-1]
    )
    return math.sqrt(float(np.mean(laplacian * laplacian)))


def score_pixels(pixels: ArrayLike, width: int | None = None) -> FrameQuality:
    """Score a greyscale image given as a 2-D array or a flat buffer.

    Args:
        pixels: Intensities in 0..255, either shaped (height, width) or flat.
        width: Row width; required for flat buffers.

    Returns:
        FrameQuality with sharpness, brightness and composite score.

    Raises:
        ValidationError: If the buffer cannot be laid out as an image.
        PreconditionError: If the image has no pixels.
    """
    grid = _as_grid(pixels, width)
    if grid.size == 0:
        raise PreconditionError("Cannot score an empty image")

    brightness = float(np.mean(grid)) / 255.0
    sharpness = laplacian_rms(grid) / 255.0
    score = sharpness * (1.0 - 2.0 * abs(brightness - 0.5))

    return FrameQuality(sharpness=sharpness, brightness=brightness, score=score)


def load_greyscale(path: Path) -> NDArray[np.uint8]:
    """Decode an image file to a (height, width) uint8 greyscale array."""
    with Image.open(path) as img:
        return np.asarray(img.convert("L"), dtype=np.uint8)


def score_image(path: Path) -> FrameQuality:
    """Score an image file."""
    return score_pixels(load_greyscale(path))


def score_frame(frame: Frame) -> ScoredFrame:
    """Score a frame from its image file."""
    quality = score_image(frame.path)
    logger.debug(
        f"{frame.path.name}: score={quality.score:.3f}, "
        f"sharp={quality.sharpness:.3f}, bright={quality.brightness:.2f}"
    )
    return ScoredFrame(
        frame=frame,
        sharpness=quality.sharpness,
        brightness=quality.brightness,
        score=quality.score,
    )
