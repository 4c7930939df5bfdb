"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _require_ffmpeg() -> None:
    for tool in ("ffmpeg", "ffprobe"):
        if shutil.which(tool) is None:
            pytest.skip(f"{tool} not installed")


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="session")
def synthetic_video(tmp_path_factory) -> Path:
    """12s, 320x240 test pattern with a sine tone, generated with ffmpeg."""
    _require_ffmpeg()
    path = tmp_path_factory.mktemp("media") / "pattern.mp4"
    subprocess.run(
        [
            "ffmpeg", "-hide_banner", "-loglevel", "error",
            "-f", "lavfi", "-i", "testsrc=duration=12:size=320x240:rate=10",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=12",
            "-shortest", "-pix_fmt", "yuv420p", "-y", str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


@pytest.fixture(scope="session")
def short_talk_video():
    """Short talk recording with speech (30s, 720p, 1 speaker)."""
    path = FIXTURES_DIR / "short_talk.mp4"
    if not path.exists():
        pytest.skip(f"Test fixture not found: {path}")
    if shutil.which("whisper-cli") is None:
        pytest.skip("whisper-cli not installed")
    return path
