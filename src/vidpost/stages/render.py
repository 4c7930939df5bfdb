"""Render an article and its section images as a standalone HTML page."""

from __future__ import annotations

import html
import os
from collections.abc import Sequence
from pathlib import Path

from vidpost.models.schema import Article, ContentType

THEMES: dict[ContentType, dict[str, str]] = {
    ContentType.BLOG: {"bg": "#ffffff", "accent": "#2563eb", "font": "serif"},
    ContentType.LP: {"bg": "#f8fafc", "accent": "#059669", "font": "sans-serif"},
    ContentType.TUTORIAL: {"bg": "#fffbeb", "accent": "#d97706", "font": "monospace"},
}

_PAGE = """<!DOCTYPE html>
<html lang="{lang}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{ font-family: {font}, system-ui, sans-serif; background: {bg}; color: #1f2937; line-height: 1.8; }}
    .container {{ max-width: 800px; margin: 0 auto; padding: 2rem; }}
    h1 {{ font-size: 2.5rem; color: {accent}; margin-bottom: 2rem; text-align: center; }}
    .section {{ margin-bottom: 3rem; position: relative; }}
    .timestamp {{ position: absolute; top: 0.5rem; right: 0.5rem; background: rgba(0,0,0,0.7);
      color: white; padding: 0.25rem 0.5rem; border-radius: 4px; font-size: 0.8rem; font-family: monospace; }}
    .section-image {{ width: 100%; height: 400px; object-fit: cover; border-radius: 8px; margin-bottom: 1.5rem; }}
    h2 {{ font-size: 1.5rem; color: {accent}; margin-bottom: 1rem; border-left: 4px solid {accent}; padding-left: 1rem; }}
    .body {{ font-size: 1.1rem; }}
    .body p {{ margin-bottom: 1rem; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{title}</h1>
{sections}
  </div>
</body>
</html>
"""

_SECTION = """    <section class="section">
{badge}      <img src="{src}" alt="{alt}" class="section-image">
      <div class="section-content">
        <h2>{heading}</h2>
        <div class="body">{body}</div>
      </div>
    </section>"""


def format_clock(seconds: float) -> str:
    """Format seconds as `HH:MM:SS`."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def render_article(
    article: Article,
    images: Sequence[Path | None],
    html_path: Path,
    lang: str = "ja",
) -> str:
    """Build the HTML document for an article.

    Image paths are written relative to the directory of `html_path`. Section
    bodies are inserted as-is since they may contain markup; everything else
    is escaped.
    """
    theme = THEMES[article.type]
    base_dir = html_path.parent

    parts: list[str] = []
    for i, section in enumerate(article.sections):
        image = images[i] if i < len(images) else None
        src = Path(os.path.relpath(image, base_dir)).as_posix() if image else ""
        badge = ""
        if section.start_time is not None:
            badge = f'      <div class="timestamp">{format_clock(section.start_time)}</div>\n'
        parts.append(
            _SECTION.format(
                badge=badge,
                src=html.escape(src),
                alt=html.escape(section.heading),
                heading=html.escape(section.heading),
                body=section.body,
            )
        )

    return _PAGE.format(
        lang=html.escape(lang),
        title=html.escape(article.title),
        sections="\n".join(parts),
        **theme,
    )
