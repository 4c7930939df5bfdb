"""Pytest configuration and fixtures for vidpost tests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

from helpers import SAMPLE_VTT, checkerboard, flat_image, make_frames
from vidpost.stages.frames import Frame


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_video_path(temp_dir: Path) -> Path:
    """Create a mock video file for testing.

    Note: This is not a decodable video. Tests that reach ffmpeg mock it.
    """
    video_path = temp_dir / "talk.mp4"
    video_path.write_bytes(b"mock video content for testing")
    return video_path


@pytest.fixture
def sample_vtt() -> str:
    return SAMPLE_VTT


@pytest.fixture
def frame_set(temp_dir: Path) -> list[Frame]:
    """Six frames one second apart; frame 3 is the sharpest."""
    pixels = [flat_image(128) for _ in range(6)]
    pixels[3] = checkerboard()
    return make_frames(temp_dir / "frames", pixels)


@pytest.fixture
def gemini_key_env():
    """Set a mock GEMINI_API_KEY for tests that require it."""
    original = os.environ.get("GEMINI_API_KEY")
    os.environ["GEMINI_API_KEY"] = "test_key_for_testing"
    yield "test_key_for_testing"
    if original is None:
        os.environ.pop("GEMINI_API_KEY", None)
    else:
        os.environ["GEMINI_API_KEY"] = original


@pytest.fixture
def no_gemini_key_env():
    """Ensure no Gemini API key is set for tests that check its absence."""
    saved = {k: os.environ.pop(k) for k in ("GEMINI_API_KEY", "GOOGLE_API_KEY") if k in os.environ}
    yield
    os.environ.update(saved)
