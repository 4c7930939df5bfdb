"""Data models for vidpost."""

from vidpost.models.job import Job, JobStatus, Step
from vidpost.models.schema import Article, ContentType, EventType, PipelineEvent, Section

__all__ = [
    "Job",
    "JobStatus",
    "Step",
    "Article",
    "ContentType",
    "Section",
    "EventType",
    "PipelineEvent",
]
