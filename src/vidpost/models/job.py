"""Job record and the status state machine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Processing status of a job."""

    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"

    def can_transition_to(self, target: JobStatus) -> bool:
        """Check whether moving from this status to `target` is allowed."""
        return target in _TRANSITIONS[self]


# A run enters a step state from any resting state (pending, completed, error);
# step states only move forward, back to pending, or to error.
_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset(
        {JobStatus.TRANSCRIBING, JobStatus.EXTRACTING, JobStatus.GENERATING, JobStatus.ERROR}
    ),
    JobStatus.TRANSCRIBING: frozenset(
        {JobStatus.PENDING, JobStatus.EXTRACTING, JobStatus.ERROR}
    ),
    JobStatus.EXTRACTING: frozenset(
        {JobStatus.PENDING, JobStatus.GENERATING, JobStatus.ERROR}
    ),
    JobStatus.GENERATING: frozenset(
        {JobStatus.PENDING, JobStatus.COMPLETED, JobStatus.ERROR}
    ),
    JobStatus.COMPLETED: frozenset(
        {JobStatus.TRANSCRIBING, JobStatus.EXTRACTING, JobStatus.GENERATING}
    ),
    JobStatus.ERROR: frozenset(
        {JobStatus.TRANSCRIBING, JobStatus.EXTRACTING, JobStatus.GENERATING}
    ),
}


class Step(str, Enum):
    """A runnable pipeline step."""

    TRANSCRIBE = "transcribe"
    EXTRACT = "extract"
    GENERATE = "generate"
    ALL = "all"

    def expand(self) -> list[Step]:
        """The concrete steps this request runs, in order."""
        if self is Step.ALL:
            return [Step.TRANSCRIBE, Step.EXTRACT, Step.GENERATE]
        return [self]

    @property
    def status(self) -> JobStatus:
        """Status a job holds while this step runs."""
        return _STEP_STATUS[self]

    @property
    def flag(self) -> str:
        """Name of the completion flag this step sets."""
        return f"{self.value}_done"


_STEP_STATUS: dict[Step, JobStatus] = {
    Step.TRANSCRIBE: JobStatus.TRANSCRIBING,
    Step.EXTRACT: JobStatus.EXTRACTING,
    Step.GENERATE: JobStatus.GENERATING,
}


class Job(BaseModel):
    """One video-to-article pipeline run and its artifacts.

    Artifact paths are relative to the job's storage root.
    """

    id: str = Field(..., description="Unique job identifier")
    name: str = Field(..., description="Original file name of the uploaded video")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    status: JobStatus = Field(default=JobStatus.PENDING)
    error_message: str | None = Field(default=None, description="Message of the last failure")

    transcribe_done: bool = False
    extract_done: bool = False
    generate_done: bool = False

    video_path: str | None = Field(default=None, description="Source video file")
    video_size: int | None = Field(default=None, ge=0, description="Source video size in bytes")
    wav_path: str | None = None
    vtt_path: str | None = None
    html_path: str | None = None
    frames_dir: str | None = None
    output_dir: str | None = None

    @property
    def all_done(self) -> bool:
        """True when every step has completed at least once."""
        return self.transcribe_done and self.extract_done and self.generate_done
