#!/usr/bin/env python3
"""vidpost Quickstart Example.

This script demonstrates the basic usage of vidpost to turn a talk video
into an illustrated HTML article.

Usage:
    python examples/quickstart.py path/to/video.mp4

Requirements:
    - ffmpeg, ffprobe and whisper-cli on PATH
    - Set GEMINI_API_KEY environment variable for article generation
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    """Run the quickstart example."""
    import vidpost

    if len(sys.argv) < 2:
        print("Usage: python quickstart.py <video_file> [--local-whisper]")
        print("\nExample:")
        print("  python quickstart.py talk.mp4")
        print("  python quickstart.py talk.mp4 --local-whisper")
        sys.exit(1)

    video_path = Path(sys.argv[1])
    local_whisper = "--local-whisper" in sys.argv

    if not video_path.exists():
        print(f"Error: File not found: {video_path}")
        sys.exit(1)

    transcriber = (
        vidpost.TranscriberBackend.FASTER_WHISPER
        if local_whisper
        else vidpost.TranscriberBackend.WHISPER_CLI
    )

    print(f"vidpost v{vidpost.__version__}")
    print(f"Processing: {video_path}")
    print(f"Transcriber: {transcriber.value}")
    print("-" * 50)

    pipeline = vidpost.Pipeline(
        data_dir="./data",
        options={"transcriber": transcriber, "language": "en"},
    )

    job = pipeline.create_job(video_path)
    print(f"Job: {job.id}")

    for event in pipeline.run(job.id, vidpost.Step.ALL):
        if event.type is vidpost.EventType.PROGRESS:
            print(f"[{event.data}%]")
        elif event.type is vidpost.EventType.ERROR:
            print(f"Error: {event.data}")
            sys.exit(1)
        else:
            print(event.data.rstrip())

    job = pipeline.get_job(job.id)
    print("\n" + "=" * 50)
    print(f"Status: {job.status.value}")
    print(f"Article: {pipeline.job_dir(job.id) / job.html_path}")


if __name__ == "__main__":
    main()
