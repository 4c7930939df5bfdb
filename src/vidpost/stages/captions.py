"""Caption stage: timestamped caption parsing.

Turns a WebVTT/SRT style document into an ordered list of cues. Lines before
the first timing line (the WEBVTT header, metadata) are ignored, cue
identifiers are skipped, and cues whose text ends up empty are dropped.
A document without timing lines parses to an empty list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TIME_RANGE_SEPARATOR = "-->"


@dataclass(frozen=True)
class Cue:
    """One time-bounded unit of caption text."""

    start: float  # Start time in seconds
    end: float  # End time in seconds
    text: str

    @property
    def duration(self) -> float:
        """Duration of the cue in seconds."""
        return self.end - self.start


def parse_timestamp(token: str) -> float:
    """Convert `hh:mm:ss.fff` or `mm:ss.fff` to seconds.

    Both `.` and `,` are accepted as the fractional separator.

    Raises:
        ValueError: If the token does not have 2 or 3 numeric fields.
    """
    parts = token.strip().split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds.replace(",", "."))
    if len(parts) == 2:
        minutes, seconds = parts
        return int(minutes) * 60 + float(seconds.replace(",", "."))
    raise ValueError(f"Invalid timestamp: {token!r}")


def _parse_time_range(line: str) -> tuple[float, float]:
    left, right = line.split(TIME_RANGE_SEPARATOR, 1)
    # Cue settings may follow the end time ("00:01.000 align:start")
    right_tokens = right.split()
    if not right_tokens:
        raise ValueError(f"Missing end time: {line!r}")
    return parse_timestamp(left), parse_timestamp(right_tokens[0])


def parse_captions(content: str) -> list[Cue]:
    """Parse a timestamped caption document into cues.

    Args:
        content: Full text of the caption document.

    Returns:
        Cues in document order.
    """
    lines = content.splitlines()
    cues: list[Cue] = []
    i = 0

    while i < len(lines) and TIME_RANGE_SEPARATOR not in lines[i]:
        i += 1

    while i < len(lines):
        line = lines[i].strip()
        if TIME_RANGE_SEPARATOR not in line:
            i += 1
            continue

        try:
            start, end = _parse_time_range(line)
        except ValueError as e:
            logger.warning(f"Skipping cue at line {i + 1}: {e}")
            start = end = None

        i += 1
        text_parts: list[str] = []
        while i < len(lines) and lines[i].strip() and TIME_RANGE_SEPARATOR not in lines[i]:
            text_parts.append(lines[i].strip())
            i += 1

        text = " ".join(text_parts).strip()
        if start is None or not text:
            continue
        if end < start:
            logger.warning(f"Skipping cue ending before it starts ({start}s > {end}s)")
            continue

        cues.append(Cue(start=start, end=end, text=text))

    logger.debug(f"Parsed {len(cues)} cues")
    return cues


def cues_to_text(cues: list[Cue]) -> str:
    """Join cue texts into a single transcript string."""
    return " ".join(cue.text for cue in cues)


def format_timestamp(seconds: float) -> str:
    """Format seconds as a WebVTT timestamp (`hh:mm:ss.fff`)."""
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def format_vtt(cues: list[Cue]) -> str:
    """Render cues as a WebVTT document."""
    blocks = ["WEBVTT", ""]
    for cue in cues:
        blocks.append(f"{format_timestamp(cue.start)} --> {format_timestamp(cue.end)}")
        blocks.append(cue.text)
        blocks.append("")
    return "\n".join(blocks)
