"""Gemini-backed content and image services."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from vidpost.errors import ParseError
from vidpost.models.schema import Article, ContentType
from vidpost.services.base import ContentService, ImageService
from vidpost.stages.captions import Cue, cues_to_text

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_MODEL = "gemini-2.0-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"

# Only the head of the transcript is needed to recognise its style
CLASSIFY_TRANSCRIPT_CHARS = 3000

STYLE_GUIDES = {
    ContentType.BLOG: "a readable blog post with a friendly tone",
    ContentType.LP: "an engaging landing page that highlights the benefits",
    ContentType.TUTORIAL: "an easy-to-follow step-by-step tutorial",
}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_classify_prompt(transcript: str) -> str:
    return (
        "Analyze the following transcript and answer with exactly one content type.\n\n"
        "Types:\n"
        "- blog: general commentary, reviews, diaries, casual talk\n"
        "- lp: product introductions, promotion, sales\n"
        "- tutorial: how-tos, procedures, tutorials\n\n"
        f"Transcript:\n{transcript[:CLASSIFY_TRANSCRIPT_CHARS]}\n\n"
        "Answer (only one of blog/lp/tutorial):"
    )


def build_article_prompt(transcript: str, duration: float, content_type: ContentType, section_count: int) -> str:
    return (
        f"From the following transcript (video length: {int(duration)} seconds), write "
        f"{STYLE_GUIDES[content_type]}. Write it in the language of the transcript.\n\n"
        "Requirements:\n"
        "- One title\n"
        f"- Exactly {section_count} sections\n"
        "- Each section has a heading, a body, a start time in seconds and an image prompt\n"
        "- The image prompt is a short English description that visualises the section "
        '(e.g. "Two developers discussing code on a screen")\n\n'
        f"Transcript:\n{transcript}\n\n"
        "Output JSON:\n"
        "{\n"
        '  "title": "Article title",\n'
        '  "sections": [\n'
        "    {\n"
        '      "heading": "Section heading",\n'
        '      "body": "Body (HTML tags allowed)",\n'
        '      "startTime": 0,\n'
        '      "imagePrompt": "English description for image generation"\n'
        "    }\n"
        "  ]\n"
        "}\n\n"
        "JSON:"
    )


def build_transform_prompt(directive: str) -> str:
    return (
        f"Transform this image to emphasize: {directive}. Make it clean, professional, "
        "and visually appealing for a blog post. Keep the main subject but enhance the "
        "visual presentation."
    )


def parse_content_type(response_text: str) -> ContentType:
    """Map a free-text classification answer onto a ContentType."""
    answer = response_text.strip().lower()
    if "tutorial" in answer:
        return ContentType.TUTORIAL
    if "lp" in answer:
        return ContentType.LP
    return ContentType.BLOG


def parse_article(response_text: str, content_type: ContentType) -> Article:
    """Extract the JSON article from a model response.

    Raises:
        ParseError: If no JSON object is found or it does not match the schema.
    """
    match = _JSON_OBJECT.search(response_text or "")
    if not match:
        raise ParseError("Content generation returned no JSON")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseError(f"Content generation returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Content generation returned JSON that is not an object")

    data["type"] = content_type
    try:
        article = Article.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(f"Content generation returned an unexpected structure: {e}") from e

    if not article.sections:
        raise ParseError("Content generation returned no sections")
    return article


def _extract_image_bytes(response) -> bytes | None:
    """Return the first inline image part of a generate_content response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return inline.data
    return None


class GeminiContentService(ContentService):
    """Classification and article writing with a Gemini text model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_CONTENT_MODEL,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model

    def _generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(model=self._model, contents=prompt)
        return response.text or ""

    def classify(self, transcript: str) -> ContentType:
        logger.info("Classifying content type...")
        return parse_content_type(self._generate(build_classify_prompt(transcript)))

    def generate_article(
        self,
        cues: Sequence[Cue],
        content_type: ContentType,
        section_count: int,
    ) -> Article:
        logger.info(f"Generating {section_count} sections (type: {content_type.value})...")
        duration = cues[-1].end if cues else 0.0
        prompt = build_article_prompt(cues_to_text(list(cues)), duration, content_type, section_count)
        return parse_article(self._generate(prompt), content_type)


class GeminiImageService(ImageService):
    """Image-to-image transformation with a Gemini image model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_IMAGE_MODEL,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model

    def transform(self, image: bytes, directive: str, mime_type: str = "image/jpeg") -> bytes | None:
        response = self._client.models.generate_content(
            model=self._model,
            contents=[
                build_transform_prompt(directive),
                types.Part.from_bytes(data=image, mime_type=mime_type),
            ],
        )
        return _extract_image_bytes(response)
