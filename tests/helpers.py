"""Shared test helpers: synthetic frames and fake generative services."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np
from PIL import Image

from vidpost.models.schema import Article, ContentType, Section
from vidpost.services.base import ContentService, ImageService
from vidpost.stages.captions import Cue
from vidpost.stages.frames import Frame, format_timecode

SAMPLE_VTT = """WEBVTT

00:00:00.000 --> 00:00:05.000
Welcome to the talk.

00:01:00.000 --> 00:01:05.000
Here is the first step.

00:02:00.000 --> 00:02:04.500
And this is the second step.
"""


def write_image(path: Path, pixels: np.ndarray) -> Path:
    """Write a greyscale uint8 array to an image file."""
    Image.fromarray(pixels.astype(np.uint8)).save(path)
    return path


def flat_image(value: int, size: int = 16) -> np.ndarray:
    return np.full((size, size), value, dtype=np.uint8)


def checkerboard(size: int = 16, low: int = 64, high: int = 192) -> np.ndarray:
    yy, xx = np.indices((size, size))
    return np.where((xx + yy) % 2 == 0, high, low).astype(np.uint8)


def make_frames(
    frames_dir: Path,
    pixels: Sequence[np.ndarray],
    interval: float = 1.0,
) -> list[Frame]:
    """Write one frame per array, named the way extraction names them."""
    frames_dir.mkdir(parents=True, exist_ok=True)
    frames = []
    for i, data in enumerate(pixels):
        offset = i * interval
        path = frames_dir / f"frame_{i:04d}_{format_timecode(offset)}.png"
        write_image(path, data)
        frames.append(Frame(path=path, offset=offset, index=i))
    return frames


class FakeContentService(ContentService):
    """Content service returning a fixed article."""

    def __init__(self, article: Article | None = None, content_type: ContentType = ContentType.BLOG):
        self.article = article or Article(
            type=content_type,
            title="Test Article",
            sections=[
                Section(heading=f"Part {i + 1}", body=f"<p>Body {i + 1}</p>", image_prompt="clean up")
                for i in range(2)
            ],
        )
        self.content_type = content_type
        self.classify_calls: list[str] = []
        self.generate_calls: list[tuple[int, ContentType, int]] = []

    def classify(self, transcript: str) -> ContentType:
        self.classify_calls.append(transcript)
        return self.content_type

    def generate_article(
        self, cues: Sequence[Cue], content_type: ContentType, section_count: int
    ) -> Article:
        self.generate_calls.append((len(cues), content_type, section_count))
        return self.article


class FakeImageService(ImageService):
    """Image service returning fixed bytes (or raising)."""

    def __init__(self, result: bytes | None = b"\x89PNG fake", error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[int, str, str]] = []

    def transform(self, image: bytes, directive: str, mime_type: str = "image/jpeg") -> bytes | None:
        self.calls.append((len(image), directive, mime_type))
        if self.error is not None:
            raise self.error
        return self.result


