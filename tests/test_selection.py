"""Tests for frame selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidpost.errors import PreconditionError, ValidationError
from vidpost.stages.frames import Frame
from vidpost.stages.quality import ScoredFrame
from vidpost.stages.selection import (
    copy_selected,
    default_selection_dir,
    find_nearest_frame,
    select_evenly,
    select_frame,
)


class CountingScorer:
    """Scores frames from a lookup table and records each call."""

    def __init__(self, scores: dict[float, float]):
        self.scores = scores
        self.calls: list[float] = []

    def __call__(self, frame: Frame) -> ScoredFrame:
        self.calls.append(frame.offset)
        score = self.scores.get(frame.offset, 0.0)
        return ScoredFrame(frame=frame, sharpness=score, brightness=0.5, score=score)


def _frames(offsets: list[float]) -> list[Frame]:
    return [Frame(path=Path(f"frame_{i}.jpg"), offset=o, index=i) for i, o in enumerate(offsets)]


class TestSelectFrame:
    """Tests for temporal selection."""

    OFFSETS = [0, 30, 60, 90, 120, 1000]

    def test_best_in_window_wins(self) -> None:
        scorer = CountingScorer({0: 0.1, 30: 0.2, 60: 0.9, 90: 0.3, 120: 0.4, 1000: 5.0})
        picked = select_frame(_frames(self.OFFSETS), target=50, window=120, scorer=scorer)

        assert picked.offset == 60
        # Only frames in [-70, 170] are scored
        assert sorted(scorer.calls) == [0, 30, 60, 90, 120]

    def test_empty_window_falls_back_to_nearest(self) -> None:
        scorer = CountingScorer({})
        picked = select_frame(_frames(self.OFFSETS), target=50, window=5, scorer=scorer)

        assert picked.offset == 60
        assert scorer.calls == []

    def test_tie_goes_to_earliest(self) -> None:
        scorer = CountingScorer({30: 0.5, 60: 0.5})
        frames = _frames([60, 30])
        assert select_frame(frames, target=45, window=20, scorer=scorer).offset == 30

    def test_nearest_tie_goes_to_earliest(self) -> None:
        assert find_nearest_frame(_frames([20, 0]), target=10).offset == 0

    def test_single_frame(self) -> None:
        picked = select_frame(_frames([7]), target=500, window=1, scorer=CountingScorer({}))
        assert picked.offset == 7

    def test_negative_scores_still_compared(self) -> None:
        scorer = CountingScorer({0: -0.5, 10: -0.1})
        assert select_frame(_frames([0, 10]), 5, 10, scorer=scorer).offset == 10

    def test_empty_frames(self) -> None:
        with pytest.raises(PreconditionError):
            select_frame([], target=0)

    def test_negative_window(self) -> None:
        with pytest.raises(ValidationError):
            select_frame(_frames([0]), target=0, window=-1)


class TestSelectEvenly:
    """Tests for even-coverage selection."""

    def test_best_per_group(self) -> None:
        offsets = list(range(10))
        scorer = CountingScorer({1: 1.0, 5: 1.0, 9: 1.0})
        picks = select_evenly(_frames(offsets), 3, scorer=scorer)

        # Groups of ceil(10 / 3) = 4: [0-3], [4-7], [8-9]
        assert [p.offset for p in picks] == [1, 5, 9]
        assert len(scorer.calls) == 10

    def test_fewer_frames_than_groups(self) -> None:
        picks = select_evenly(_frames([0, 1]), 4, scorer=CountingScorer({}))
        assert [p.offset for p in picks] == [0, 1]

    def test_uniform_scores_take_group_start(self) -> None:
        picks = select_evenly(_frames(list(range(6))), 2, scorer=CountingScorer({}))
        assert [p.offset for p in picks] == [0, 3]

    def test_invalid_count(self) -> None:
        with pytest.raises(ValidationError):
            select_evenly(_frames([0]), 0)

    def test_empty_frames(self) -> None:
        with pytest.raises(PreconditionError):
            select_evenly([], 2)


class TestWithImages:
    """Selection over real image files."""

    def test_sharpest_frame_selected(self, frame_set: list[Frame]) -> None:
        assert select_frame(frame_set, target=2, window=3).offset == 3

    def test_copy_selected(self, frame_set: list[Frame], temp_dir: Path) -> None:
        picks = select_evenly(frame_set, 2)
        paths = copy_selected(picks, temp_dir / "picked")

        assert [p.name for p in paths] == ["selected_1.png", "selected_2.png"]
        assert all(p.exists() for p in paths)

    def test_default_selection_dir(self, temp_dir: Path) -> None:
        assert default_selection_dir(temp_dir / "talk_frames") == temp_dir / "talk_selected"
        assert default_selection_dir(temp_dir / "frames") == temp_dir / "frames_selected"

    def test_group_tie_goes_to_earliest(self) -> None:
        scorer = CountingScorer({10: 0.7, 20: 0.7})
        picks = select_evenly(_frames([20, 10]), 1, scorer=scorer)
        assert [p.offset for p in picks] == [10]
