"""vidpost: Turn a talk video into an illustrated article."""

from vidpost.config import PipelineConfig, ProcessingOptions, TranscriberBackend
from vidpost.errors import PipelineError
from vidpost.models.job import Job, JobStatus, Step
from vidpost.models.schema import Article, ContentType, EventType, PipelineEvent, Section
from vidpost.pipeline import Pipeline
from vidpost.store import JobStore, JsonJobStore, MemoryJobStore

__version__ = "0.1.0"

__all__ = [
    "Pipeline",
    "PipelineConfig",
    "PipelineError",
    "ProcessingOptions",
    "TranscriberBackend",
    "Job",
    "JobStatus",
    "Step",
    "Article",
    "ContentType",
    "Section",
    "EventType",
    "PipelineEvent",
    "JobStore",
    "JsonJobStore",
    "MemoryJobStore",
    "__version__",
]
