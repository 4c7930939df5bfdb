"""In-process job store."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

from vidpost.errors import NotFoundError
from vidpost.models.job import Job
from vidpost.store.base import JobStore


class MemoryJobStore(JobStore):
    """Job records held in a dict; lost when the process exits."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def create(self, job: Job) -> Job:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job already exists: {job.id}")
            self._jobs[job.id] = job.model_copy()
            return job.model_copy()

    def update(self, job_id: str, **fields: Any) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError(f"Job not found: {job_id}")
            fields["updated_at"] = datetime.now(timezone.utc)
            updated = job.model_copy(update=fields)
            self._jobs[job_id] = updated
            return updated.model_copy()

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def list(self) -> list[Job]:
        with self._lock:
            return sorted((j.model_copy() for j in self._jobs.values()), key=lambda j: j.created_at)
