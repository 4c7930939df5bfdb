"""Tests for the article stage with fake services."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpers import FakeContentService, FakeImageService, checkerboard, flat_image, make_frames
from vidpost.errors import ParseError, PreconditionError
from vidpost.models.schema import Article, ContentType, Section
from vidpost.stages.article import choose_frames, generate_article, illustrate_section
from vidpost.stages.captions import Cue
from vidpost.stages.frames import Frame

CUES = [Cue(0, 5, "intro"), Cue(60, 65, "middle"), Cue(120, 125, "end")]


def _timed_article(times: list[float]) -> Article:
    return Article(
        title="Timed",
        sections=[
            Section(heading=f"S{i}", body="b", start_time=t, image_prompt="p")
            for i, t in enumerate(times)
        ],
    )


class TestChooseFrames:
    """Tests for choose_frames()."""

    def test_temporal_selection(self, temp_dir: Path) -> None:
        pixels = [flat_image(128) for _ in range(7)]
        pixels[1] = checkerboard()
        pixels[5] = checkerboard()
        frames = make_frames(temp_dir, pixels, interval=10.0)

        chosen = choose_frames(_timed_article([0, 60]), frames, window=15)
        assert [f.offset for f in chosen] == [10.0, 50.0]

    def test_even_selection_by_position(self, frame_set: list[Frame]) -> None:
        article = Article(title="T", sections=[Section(heading="a"), Section(heading="b")])
        chosen = choose_frames(article, frame_set)
        # Groups [0-2] and [3-5]; frame 3 is the sharp one
        assert chosen[0].offset == 0.0
        assert chosen[1].offset == 3.0

    def test_image_index_clamped(self, frame_set: list[Frame]) -> None:
        article = Article(
            title="T",
            sections=[Section(heading="a", image_index=1), Section(heading="b", image_index=9)],
        )
        chosen = choose_frames(article, frame_set)
        assert [f.offset for f in chosen] == [3.0, 3.0]


class TestIllustrateSection:
    """Tests for illustrate_section()."""

    def test_transformed_image_written(self, frame_set: list[Frame], temp_dir: Path) -> None:
        service = FakeImageService(result=b"PNG")
        path, transformed = illustrate_section(frame_set[0], "brighter", temp_dir, 1, service)

        assert transformed
        assert path.name == "section_1.png"
        assert path.read_bytes() == b"PNG"
        assert service.calls[0][1:] == ("brighter", "image/png")

    def test_failure_falls_back_to_original(self, frame_set: list[Frame], temp_dir: Path) -> None:
        service = FakeImageService(error=RuntimeError("quota exceeded"))
        path, transformed = illustrate_section(frame_set[0], "x", temp_dir, 2, service)

        assert not transformed
        assert path.read_bytes() == frame_set[0].path.read_bytes()

    def test_empty_result_falls_back(self, frame_set: list[Frame], temp_dir: Path) -> None:
        path, transformed = illustrate_section(
            frame_set[0], "x", temp_dir, 3, FakeImageService(result=None)
        )
        assert not transformed
        assert path.exists()

    def test_no_directive_skips_service(self, frame_set: list[Frame], temp_dir: Path) -> None:
        service = FakeImageService()
        _, transformed = illustrate_section(frame_set[0], "", temp_dir, 1, service)
        assert not transformed
        assert service.calls == []


class TestGenerateArticle:
    """Tests for generate_article()."""

    def test_writes_document(self, frame_set: list[Frame], temp_dir: Path) -> None:
        content = FakeContentService(content_type=ContentType.TUTORIAL)
        images = FakeImageService()
        output_dir = temp_dir / "output"
        html_path = temp_dir / "video.html"

        lines = list(
            generate_article(
                CUES, frame_set, output_dir, html_path, content, images, section_count=2
            )
        )

        assert any("Content type: tutorial" in line for line in lines)
        assert content.classify_calls == ["intro middle end"]
        assert content.generate_calls == [(3, ContentType.TUTORIAL, 2)]
        assert len(images.calls) == 2

        page = html_path.read_text(encoding="utf-8")
        assert "Test Article" in page
        assert 'src="output/section_1.png"' in page

        saved = json.loads(html_path.with_suffix(".json").read_text(encoding="utf-8"))
        assert saved["title"] == "Test Article"

    def test_rerun_replaces_section_images(self, frame_set: list[Frame], temp_dir: Path) -> None:
        output_dir = temp_dir / "output"
        output_dir.mkdir()
        (output_dir / "section_9.png").write_bytes(b"stale")

        list(
            generate_article(
                CUES, frame_set, output_dir, temp_dir / "v.html",
                FakeContentService(), FakeImageService(result=None),
            )
        )

        assert sorted(p.name for p in output_dir.iterdir()) == ["section_1.png", "section_2.png"]

    def test_no_cues(self, frame_set: list[Frame], temp_dir: Path) -> None:
        content = FakeContentService()
        with pytest.raises(ParseError):
            list(generate_article([], frame_set, temp_dir, temp_dir / "a.html", content, None))
        assert content.classify_calls == []

    def test_no_frames(self, temp_dir: Path) -> None:
        with pytest.raises(PreconditionError):
            list(
                generate_article(
                    CUES, [], temp_dir, temp_dir / "a.html", FakeContentService(), None
                )
            )

    def test_service_parse_error_propagates(self, frame_set: list[Frame], temp_dir: Path) -> None:
        class BrokenContent(FakeContentService):
            def generate_article(self, cues, content_type, section_count):
                raise ParseError("Content generation returned no JSON")

        with pytest.raises(ParseError, match="no JSON"):
            list(
                generate_article(
                    CUES, frame_set, temp_dir, temp_dir / "a.html", BrokenContent(), None
                )
            )
