"""Integration tests for frame extraction with real ffmpeg."""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from vidpost.stages.frames import extract_frames, load_frames
from vidpost.stages.ingest import probe_duration
from vidpost.stages.quality import score_frame
from vidpost.stages.selection import select_evenly, select_frame


@pytest.mark.integration
class TestFrameExtraction:
    """Real frame extraction from a generated video."""

    def test_probe_duration(self, synthetic_video: Path) -> None:
        assert probe_duration(synthetic_video) == pytest.approx(12.0, abs=0.5)

    def test_extract_about_target_frames(self, synthetic_video: Path, temp_dir: Path) -> None:
        frames = extract_frames(synthetic_video, temp_dir / "frames", 12.0, target_frames=6)

        # ffmpeg rounds the sampling itself, so the count is approximate
        assert 5 <= len(frames) <= 7
        assert frames[0].path.name == "frame_0000_00_00_00.jpg"
        assert frames[1].timecode == "00_00_02"

        for frame in frames:
            with Image.open(frame.path) as img:
                assert img.size == (320, 240)

    def test_reload_matches_extraction(self, synthetic_video: Path, temp_dir: Path) -> None:
        extracted = extract_frames(synthetic_video, temp_dir / "frames", 12.0, target_frames=4)
        loaded = load_frames(temp_dir / "frames")
        assert [f.path for f in loaded] == [f.path for f in extracted]
        assert [f.offset for f in loaded] == [f.offset for f in extracted]

    def test_rerun_replaces_frames(self, synthetic_video: Path, temp_dir: Path) -> None:
        extract_frames(synthetic_video, temp_dir / "frames", 12.0, target_frames=6)
        second = extract_frames(synthetic_video, temp_dir / "frames", 12.0, target_frames=3)
        assert len(load_frames(temp_dir / "frames")) == len(second)

    def test_select_from_real_frames(self, synthetic_video: Path, temp_dir: Path) -> None:
        frames = extract_frames(synthetic_video, temp_dir / "frames", 12.0, target_frames=6)

        assert all(score_frame(f).sharpness > 0 for f in frames)
        assert select_frame(frames, target=6.0, window=2.0) in frames
        assert len(select_evenly(frames, 3)) == 3
