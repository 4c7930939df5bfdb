"""Pydantic models for generated content and pipeline events.

Section and Article mirror the JSON the content service is asked to return,
so they accept the camelCase keys of that contract as well as snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """Article style chosen from the transcript."""

    BLOG = "blog"
    LP = "lp"
    TUTORIAL = "tutorial"


class Section(BaseModel):
    """One article section with the moment of the video it illustrates."""

    model_config = ConfigDict(populate_by_name=True)

    heading: str = Field(..., description="Section heading")
    body: str = Field(default="", description="Section body (may contain HTML)")
    start_time: float | None = Field(
        default=None, ge=0, alias="startTime", description="Target time in seconds"
    )
    image_prompt: str = Field(
        default="", alias="imagePrompt", description="Directive for the image transformation"
    )
    image_index: int | None = Field(
        default=None, ge=0, alias="imageIndex", description="Index into evenly selected frames"
    )


class Article(BaseModel):
    """Structured article produced by the content service."""

    model_config = ConfigDict(populate_by_name=True)

    type: ContentType = Field(default=ContentType.BLOG)
    title: str = Field(..., description="Article title")
    sections: list[Section] = Field(default_factory=list)

    @property
    def has_timestamps(self) -> bool:
        """True when every section carries a target time."""
        return bool(self.sections) and all(s.start_time is not None for s in self.sections)


class EventType(str, Enum):
    """Kinds of events emitted by a pipeline run."""

    STATUS = "status"
    OUTPUT = "output"
    PROGRESS = "progress"
    ERROR = "error"
    DONE = "done"


class PipelineEvent(BaseModel):
    """A single item of the run's event stream."""

    type: EventType
    data: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.DONE, EventType.ERROR)
