"""Job repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from vidpost.models.job import Job


class JobStore(ABC):
    """Keyed storage for job records.

    Implementations must be safe to call from several threads; each call is
    atomic with respect to the record it touches.
    """

    @abstractmethod
    def get(self, job_id: str) -> Job | None:
        """Return the job, or None if it does not exist."""

    @abstractmethod
    def create(self, job: Job) -> Job:
        """Insert a new job.

        Raises:
            ValueError: If a job with the same id already exists.
        """

    @abstractmethod
    def update(self, job_id: str, **fields: Any) -> Job:
        """Set fields on a job and bump `updated_at`.

        Raises:
            NotFoundError: If the job does not exist.
        """

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """Remove a job. Returns False if it did not exist."""

    @abstractmethod
    def list(self) -> list[Job]:
        """All jobs, oldest first."""
