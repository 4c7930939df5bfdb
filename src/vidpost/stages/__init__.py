"""Processing stages for the vidpost pipeline.

Each stage handles a specific part of the video processing:
- ingest: File validation and duration probing
- transcribe: Audio extraction and speech-to-text
- captions: Timestamped caption parsing
- frames: Evenly spaced frame extraction
- quality: Sharpness and exposure scoring
- selection: Temporal and even-coverage frame selection
- article: Section writing, illustration and the final document
- render: HTML rendering
"""

__all__ = [
    "ingest",
    "transcribe",
    "captions",
    "frames",
    "quality",
    "selection",
    "article",
    "render",
]
