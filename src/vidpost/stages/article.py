"""Article stage: sections, illustrations and the final document.

This stage handles:
- Content classification and section writing via the content service
- Choosing one frame per section (temporal or even-coverage selection)
- Illustrating each section via the image service, falling back to the
  untouched frame when the service fails or returns nothing
- Rendering the HTML document

Progress is reported as an iterator of text lines, the same shape as
external process output, so the orchestrator forwards both identically.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
from collections.abc import Iterator, Sequence
from pathlib import Path

from vidpost.errors import ParseError, PreconditionError
from vidpost.models.schema import Article
from vidpost.services.base import ContentService, ImageService
from vidpost.stages.captions import Cue, cues_to_text
from vidpost.stages.frames import Frame
from vidpost.stages.quality import score_frame
from vidpost.stages.render import render_article
from vidpost.stages.selection import (
    DEFAULT_WINDOW_SECONDS,
    Scorer,
    select_evenly,
    select_frame,
)

logger = logging.getLogger(__name__)

SECTION_PREFIX = "section_"


def choose_frames(
    article: Article,
    frames: Sequence[Frame],
    window: float = DEFAULT_WINDOW_SECONDS,
    scorer: Scorer = score_frame,
) -> list[Frame]:
    """Pick one frame per section.

    Sections with target times get the best frame near their time. Otherwise
    frames are chosen with even coverage and each section takes the pick at
    its image index (or its own position when it has none).
    """
    if article.has_timestamps:
        return [select_frame(frames, s.start_time, window=window, scorer=scorer) for s in article.sections]

    picks = select_evenly(frames, len(article.sections), scorer=scorer)
    chosen: list[Frame] = []
    for i, section in enumerate(article.sections):
        index = section.image_index if section.image_index is not None else i
        if index >= len(picks):
            logger.warning(f"Image index {index} out of range, using frame {len(picks) - 1}")
            index = len(picks) - 1
        chosen.append(picks[index])
    return chosen


def illustrate_section(
    frame: Frame,
    directive: str,
    output_dir: Path,
    number: int,
    image_service: ImageService | None,
) -> tuple[Path, bool]:
    """Write the image for one section.

    Returns:
        The written path and whether the image service produced it.
    """
    transformed: bytes | None = None
    if image_service is not None and directive:
        mime_type = mimetypes.guess_type(frame.path.name)[0] or "image/jpeg"
        try:
            transformed = image_service.transform(frame.path.read_bytes(), directive, mime_type)
        except Exception as e:
            logger.warning(f"Image transform failed for section {number}, using original frame: {e}")

    if transformed:
        target = output_dir / f"{SECTION_PREFIX}{number}.png"
        target.write_bytes(transformed)
        return target, True

    target = output_dir / f"{SECTION_PREFIX}{number}{frame.path.suffix}"
    shutil.copyfile(frame.path, target)
    return target, False


def _clear_sections(output_dir: Path) -> None:
    for path in output_dir.glob(f"{SECTION_PREFIX}*"):
        if path.is_file():
            path.unlink()


def generate_article(
    cues: Sequence[Cue],
    frames: Sequence[Frame],
    output_dir: Path,
    html_path: Path,
    content_service: ContentService,
    image_service: ImageService | None,
    section_count: int = 4,
    window: float = DEFAULT_WINDOW_SECONDS,
    lang: str = "ja",
    scorer: Scorer = score_frame,
) -> Iterator[str]:
    """Generate the illustrated article, yielding progress lines.

    Writes section images into `output_dir`, the document to `html_path` and
    the structured article next to it as JSON.

    Raises:
        ParseError: If there are no cues or the content service response is unusable.
        PreconditionError: If there are no frames.
    """
    if not cues:
        raise ParseError("Caption document contains no usable cues")
    if not frames:
        raise PreconditionError("Article generation needs at least one frame")

    yield f"Cues: {len(cues)}, frames: {len(frames)}\n"

    content_type = content_service.classify(cues_to_text(list(cues)))
    yield f"Content type: {content_type.value}\n"

    article = content_service.generate_article(cues, content_type, section_count)
    yield f"Title: {article.title}\n"
    if len(article.sections) != section_count:
        logger.warning(f"Asked for {section_count} sections, got {len(article.sections)}")

    chosen = choose_frames(article, frames, window=window, scorer=scorer)

    output_dir.mkdir(parents=True, exist_ok=True)
    _clear_sections(output_dir)

    images: list[Path] = []
    total = len(article.sections)
    for number, (section, frame) in enumerate(zip(article.sections, chosen), start=1):
        when = f" at {section.start_time:.0f}s" if section.start_time is not None else ""
        yield f"[{number}/{total}] {section.heading}{when}: {frame.path.name}\n"

        path, transformed = illustrate_section(
            frame, section.image_prompt, output_dir, number, image_service
        )
        images.append(path)
        yield f"  -> {path.name}" + ("" if transformed else " (original frame)") + "\n"

    html_path.parent.mkdir(parents=True, exist_ok=True)
    html_path.write_text(render_article(article, images, html_path, lang=lang), encoding="utf-8")
    html_path.with_suffix(".json").write_text(article.model_dump_json(indent=2), encoding="utf-8")

    logger.info(f"Article written to {html_path}")
    yield f"Document: {html_path.name}\n"
