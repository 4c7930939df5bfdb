"""Interfaces for the generative services used by the generate step."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from vidpost.models.schema import Article, ContentType
from vidpost.stages.captions import Cue


class ContentService(ABC):
    """Turns a transcript into a classified, sectioned article."""

    @abstractmethod
    def classify(self, transcript: str) -> ContentType:
        """Pick the article style that fits the transcript."""

    @abstractmethod
    def generate_article(
        self,
        cues: Sequence[Cue],
        content_type: ContentType,
        section_count: int,
    ) -> Article:
        """Write an article with `section_count` sections from the cues.

        Raises:
            ParseError: If the service response is not a usable article.
        """


class ImageService(ABC):
    """Re-renders a frame to illustrate a section."""

    @abstractmethod
    def transform(self, image: bytes, directive: str, mime_type: str = "image/jpeg") -> bytes | None:
        """Return transformed image bytes, or None when no image came back."""
