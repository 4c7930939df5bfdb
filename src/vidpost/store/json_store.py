"""Job store backed by one JSON document per job."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from vidpost.errors import NotFoundError
from vidpost.models.job import Job
from vidpost.store.base import JobStore

logger = logging.getLogger(__name__)


class JsonJobStore(JobStore):
    """Persists each job as `<directory>/<job_id>.json`.

    Writes go through a temporary file and an atomic rename, so a reader
    never sees a half-written record.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, job_id: str) -> Path:
        if not job_id or "/" in job_id or "\\" in job_id or job_id.startswith("."):
            raise NotFoundError(f"Invalid job id: {job_id!r}")
        return self._dir / f"{job_id}.json"

    def _read(self, path: Path) -> Job | None:
        try:
            return Job.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None

    def _write(self, job: Job) -> None:
        path = self._path(job.id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(job.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._read(self._path(job_id))

    def create(self, job: Job) -> Job:
        with self._lock:
            if self._path(job.id).exists():
                raise ValueError(f"Job already exists: {job.id}")
            self._write(job)
            return job

    def update(self, job_id: str, **fields: Any) -> Job:
        with self._lock:
            job = self._read(self._path(job_id))
            if job is None:
                raise NotFoundError(f"Job not found: {job_id}")
            fields["updated_at"] = datetime.now(timezone.utc)
            updated = job.model_copy(update=fields)
            self._write(updated)
            return updated

    def delete(self, job_id: str) -> bool:
        with self._lock:
            path = self._path(job_id)
            if not path.exists():
                return False
            path.unlink()
            return True

    def list(self) -> list[Job]:
        jobs: list[Job] = []
        with self._lock:
            for path in self._dir.glob("*.json"):
                try:
                    job = self._read(path)
                except PydanticValidationError as e:
                    logger.warning(f"Skipping unreadable job record {path.name}: {e}")
                    continue
                if job is not None:
                    jobs.append(job)
        return sorted(jobs, key=lambda j: j.created_at)
