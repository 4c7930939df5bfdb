"""Configuration and settings for vidpost pipelines."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class TranscriberBackend(str, Enum):
    """Available speech-to-text engines."""

    WHISPER_CLI = "whisper-cli"
    FASTER_WHISPER = "faster-whisper"


class ProcessingOptions(BaseModel):
    """Options for video processing."""

    target_frames: int = Field(
        default=100, gt=0, description="Number of frames to sample across the video"
    )
    window_seconds: float = Field(
        default=120.0,
        ge=0,
        description="Tolerance window around a section's target time when picking its frame",
    )
    section_count: int = Field(
        default=4, gt=0, description="Number of article sections (and images) to generate"
    )
    language: str = Field(default="ja", description="Spoken language passed to the transcriber")
    transcriber: TranscriberBackend = Field(
        default=TranscriberBackend.WHISPER_CLI, description="Speech-to-text engine"
    )
    whisper_model: str = Field(
        default="/opt/homebrew/share/whisper-cpp/models/ggml-large-v3-turbo.bin",
        description="ggml model file used by whisper-cli",
    )
    whisper_model_size: str = Field(
        default="small", description="Model size used by the faster-whisper backend"
    )
    content_model: str = Field(
        default="gemini-2.0-flash", description="Gemini model for classification and sections"
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image", description="Gemini model for image transformation"
    )
    process_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds an external process may run before it is killed (None = no limit)",
    )


class PipelineConfig(BaseModel):
    """Configuration for a vidpost pipeline."""

    data_dir: str = Field(
        default="./data", description="Root directory for job records and artifacts"
    )
    ffmpeg: str = Field(default="ffmpeg", description="ffmpeg executable")
    ffprobe: str = Field(default="ffprobe", description="ffprobe executable")
    whisper_cli: str = Field(default="whisper-cli", description="whisper.cpp CLI executable")
    api_key: str | None = Field(
        default=None,
        description="Gemini API key. Falls back to GEMINI_API_KEY or GOOGLE_API_KEY env vars.",
    )
    options: ProcessingOptions = Field(
        default_factory=ProcessingOptions, description="Processing options"
    )

    @property
    def jobs_dir(self) -> Path:
        """Directory holding one JSON record per job."""
        return Path(self.data_dir) / "jobs"

    @property
    def projects_dir(self) -> Path:
        """Directory holding one artifact folder per job."""
        return Path(self.data_dir) / "projects"

    def get_job_dir(self, job_id: str) -> Path:
        """Storage root for a single job's artifacts."""
        return self.projects_dir / job_id

    def get_api_key(self) -> str | None:
        """Get the Gemini API key from config or environment."""
        if self.api_key is not None:
            return self.api_key
        return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")

    def validate_for_generation(self) -> None:
        """Validate that the content generation requirements are met.

        Raises:
            ValueError: If no Gemini API key is configured.
        """
        if self.get_api_key() is None:
            raise ValueError(
                "Article generation requires a Gemini API key.\n\n"
                "1. Create a key at https://aistudio.google.com/apikey\n"
                "2. Set it via environment variable:\n"
                "   export GEMINI_API_KEY='your_key_here'\n\n"
                "Alternatively, pass api_key to PipelineConfig."
            )
