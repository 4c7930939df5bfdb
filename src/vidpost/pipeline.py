"""Main pipeline orchestration for vidpost."""

from __future__ import annotations

import logging
import queue
import shutil
import threading
import time
import uuid
from collections.abc import Generator, Iterator
from pathlib import Path
from typing import Any

from vidpost.config import PipelineConfig, ProcessingOptions, TranscriberBackend
from vidpost.errors import (
    InvalidTransitionError,
    JobBusyError,
    NotFoundError,
    PipelineError,
    ValidationError,
)
from vidpost.models.job import Job, JobStatus, Step
from vidpost.models.schema import EventType, PipelineEvent
from vidpost.services.base import ContentService, ImageService
from vidpost.stages.article import generate_article
from vidpost.stages.captions import parse_captions
from vidpost.stages.frames import collect_frames, load_frames, prepare_extraction
from vidpost.stages.ingest import probe_duration, validate_file
from vidpost.stages.transcribe import (
    build_audio_command,
    build_whisper_command,
    transcribe_local,
)
from vidpost.store.base import JobStore
from vidpost.store.json_store import JsonJobStore
from vidpost.utils.process import run_streaming

logger = logging.getLogger(__name__)

VIDEO_STEM = "video"
FRAMES_DIR = "frames"
OUTPUT_DIR = "output"

STEP_LABELS = {
    Step.TRANSCRIBE: "Transcription",
    Step.EXTRACT: "Frame extraction",
    Step.GENERATE: "Article generation",
}


def _event(kind: EventType, data: str = "") -> PipelineEvent:
    return PipelineEvent(type=kind, data=data)


class JobLeases:
    """Process-wide registry of jobs that currently have a run in progress."""

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._lock = threading.Lock()

    def acquire(self, job_id: str) -> None:
        """Take the lease for a job.

        Raises:
            JobBusyError: If another run holds it.
        """
        with self._lock:
            if job_id in self._held:
                raise JobBusyError(f"Job {job_id} is already running")
            self._held.add(job_id)

    def release(self, job_id: str) -> None:
        with self._lock:
            self._held.discard(job_id)

    def is_held(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._held


# Shared by every Pipeline in the process
_leases = JobLeases()

_END = object()


class Pipeline:
    """vidpost processing pipeline.

    Owns the job lifecycle and runs the transcribe, extract and generate
    steps for a job, reporting progress as a stream of events.

    Example:
        >>> import vidpost
        >>> pipeline = vidpost.Pipeline(data_dir="./data")
        >>> job = pipeline.create_job("talk.mp4")
        >>> for event in pipeline.run(job.id, "all"):
        ...     print(event.type.value, event.data)
    """

    def __init__(
        self,
        store: JobStore | None = None,
        data_dir: str = "./data",
        api_key: str | None = None,
        options: dict[str, Any] | ProcessingOptions | None = None,
        config: PipelineConfig | None = None,
        content_service: ContentService | None = None,
        image_service: ImageService | None = None,
    ) -> None:
        """Initialize a vidpost pipeline.

        Args:
            store: Job repository. Defaults to JSON records under `data_dir/jobs`.
            data_dir: Root directory for job records and artifacts.
            api_key: Gemini API key (falls back to GEMINI_API_KEY).
            options: Processing options dict or ProcessingOptions instance.
            config: Full configuration; overrides data_dir, api_key and options.
            content_service: Content generator; defaults to Gemini on first use.
            image_service: Image transformer; defaults to Gemini on first use.
        """
        if config is None:
            if options is None:
                processing_options = ProcessingOptions()
            elif isinstance(options, dict):
                processing_options = ProcessingOptions(**options)
            else:
                processing_options = options

            config = PipelineConfig(
                data_dir=data_dir,
                api_key=api_key,
                options=processing_options,
            )

        self.config = config
        self.config.projects_dir.mkdir(parents=True, exist_ok=True)

        self.store = store if store is not None else JsonJobStore(self.config.jobs_dir)
        self._content_service = content_service
        self._image_service = image_service
        self._leases = _leases
        self._workers: dict[str, threading.Thread] = {}

        logger.info(f"vidpost pipeline initialized (data_dir={self.config.data_dir})")

    # ----- job lifecycle -----

    def job_dir(self, job_id: str) -> Path:
        """Storage root for a job's artifacts."""
        return self.config.get_job_dir(job_id)

    def create_job(self, video: str | Path, name: str | None = None) -> Job:
        """Register a new job and copy its video into the job's storage root.

        Raises:
            NotFoundError: If the video does not exist.
            ValidationError: If the video format is not supported.
        """
        source = Path(video)
        validate_file(source)

        job_id = uuid.uuid4().hex
        job_dir = self.job_dir(job_id)
        (job_dir / FRAMES_DIR).mkdir(parents=True, exist_ok=True)
        (job_dir / OUTPUT_DIR).mkdir(parents=True, exist_ok=True)

        video_name = f"{VIDEO_STEM}{source.suffix.lower()}"
        shutil.copyfile(source, job_dir / video_name)

        job = self.store.create(
            Job(
                id=job_id,
                name=name or source.name,
                video_path=video_name,
                video_size=source.stat().st_size,
                frames_dir=FRAMES_DIR,
                output_dir=OUTPUT_DIR,
            )
        )
        logger.info(f"Created job {job_id} for {source.name}")
        return job

    def get_job(self, job_id: str) -> Job:
        """Fetch a job.

        Raises:
            NotFoundError: If the job does not exist.
        """
        job = self.store.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return job

    def list_jobs(self) -> list[Job]:
        return self.store.list()

    def delete_job(self, job_id: str) -> None:
        """Delete a job record and every artifact under its storage root.

        Raises:
            NotFoundError: If the job does not exist.
            JobBusyError: If the job is running.
        """
        self.get_job(job_id)
        if self._leases.is_held(job_id):
            raise JobBusyError(f"Job {job_id} is running and cannot be deleted")

        job_dir = self.job_dir(job_id)
        if job_dir.exists():
            shutil.rmtree(job_dir)
        self.store.delete(job_id)
        logger.info(f"Deleted job {job_id}")

    # ----- state machine -----

    def _transition(self, job_id: str, target: JobStatus, **fields: Any) -> Job:
        job = self.get_job(job_id)
        if not job.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot move job {job_id} from {job.status.value} to {target.value}"
            )
        return self.store.update(job_id, status=target, **fields)

    def _fail(self, job_id: str, message: str) -> None:
        job = self.store.get(job_id)
        if job is None:
            return
        if job.status.can_transition_to(JobStatus.ERROR):
            self.store.update(job_id, status=JobStatus.ERROR, error_message=message)
        else:
            self.store.update(job_id, error_message=message)
        logger.error(f"Job {job_id} failed: {message}")

    # ----- running -----

    def run(self, job_id: str, step: Step | str = Step.ALL) -> Iterator[PipelineEvent]:
        """Run one step (or all steps) of a job.

        Yields status, output and progress events, always ending with exactly
        one `done` or `error` event. Failures are recorded on the job and
        reported through the final event rather than raised.

        The steps run on a worker thread. Closing the returned iterator only
        stops event delivery; the run and its external processes carry on,
        and `wait()` blocks until they finish.

        Args:
            job_id: Job to run.
            step: "transcribe", "extract", "generate" or "all".
        """
        try:
            requested = Step(step)
        except ValueError:
            choices = ", ".join(s.value for s in Step)
            yield _event(EventType.ERROR, f"Unknown step: {step}. Expected one of: {choices}")
            return

        try:
            self.get_job(job_id)
            self._leases.acquire(job_id)
        except (NotFoundError, JobBusyError) as e:
            yield _event(EventType.ERROR, str(e))
            return

        events: queue.Queue = queue.Queue()
        worker = threading.Thread(
            target=self._drive,
            args=(job_id, requested, events),
            name=f"vidpost-{job_id[:8]}",
        )
        self._workers[job_id] = worker
        worker.start()

        try:
            while True:
                event = events.get()
                if event is _END:
                    return
                yield event
        except GeneratorExit:
            logger.info(f"Event stream for job {job_id} closed, run continues")
            raise

    def wait(self, job_id: str, timeout: float | None = None) -> bool:
        """Block until this pipeline's run of a job has finished.

        Returns:
            False if the run is still going after `timeout` seconds.
        """
        worker = self._workers.get(job_id)
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def _drive(self, job_id: str, requested: Step, events: queue.Queue) -> None:
        try:
            for event in self._run_steps(job_id, requested):
                events.put(event)
        finally:
            self._workers.pop(job_id, None)
            self._leases.release(job_id)
            events.put(_END)

    def _run_steps(self, job_id: str, requested: Step) -> Iterator[PipelineEvent]:
        steps = requested.expand()
        start_time = time.perf_counter()
        logger.info(f"Running {requested.value} for job {job_id}")

        try:
            for position, step in enumerate(steps, start=1):
                label = STEP_LABELS[step]
                extra = {"error_message": None} if position == 1 else {}
                job = self._transition(job_id, step.status, **extra)

                yield _event(EventType.STATUS, f"{label} started...")
                step_start = time.perf_counter()

                artifacts = yield from self._execute_step(step, job)

                # Flags are only set once the step's work has succeeded
                self.store.update(job_id, **{step.flag: True}, **artifacts)
                logger.info(f"{label} finished in {time.perf_counter() - step_start:.2f}s")

                if len(steps) > 1:
                    yield _event(EventType.PROGRESS, str(100 * position // len(steps)))
                yield _event(EventType.STATUS, f"{label} complete")

            job = self.get_job(job_id)
            final = (
                JobStatus.COMPLETED
                if steps[-1] is Step.GENERATE and job.all_done
                else JobStatus.PENDING
            )
            self._transition(job_id, final)

        except PipelineError as e:
            self._fail(job_id, str(e))
            yield _event(EventType.ERROR, str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected failure in job {job_id}")
            self._fail(job_id, str(e) or type(e).__name__)
            yield _event(EventType.ERROR, str(e) or type(e).__name__)
            return

        elapsed = time.perf_counter() - start_time
        logger.info(f"Job {job_id} {requested.value} complete in {elapsed:.2f}s")
        yield _event(EventType.DONE, "All steps complete" if len(steps) > 1 else "Done")

    def _execute_step(
        self, step: Step, job: Job
    ) -> Generator[PipelineEvent, None, dict[str, str]]:
        if step is Step.TRANSCRIBE:
            lines = self._transcribe(job)
        elif step is Step.EXTRACT:
            lines = self._extract(job)
        else:
            lines = self._generate(job)

        try:
            while True:
                try:
                    line = next(lines)
                except StopIteration as stop:
                    return stop.value or {}
                yield _event(EventType.OUTPUT, line)
        finally:
            lines.close()

    # ----- steps -----

    def _video_path(self, job: Job) -> Path:
        if not job.video_path:
            raise NotFoundError(f"Job {job.id} has no video")
        video = self.job_dir(job.id) / job.video_path
        if not video.exists():
            raise NotFoundError(f"Video file not found: {video}")
        return video

    def _transcribe(self, job: Job) -> Generator[str, None, dict[str, str]]:
        options = self.config.options
        job_dir = self.job_dir(job.id)
        video = self._video_path(job)
        wav_path = job_dir / f"{VIDEO_STEM}.wav"
        output_base = job_dir / VIDEO_STEM
        vtt_path = output_base.with_suffix(".vtt")

        yield f"Extracting audio: {video.name} -> {wav_path.name}\n"
        yield from run_streaming(
            build_audio_command(video, wav_path, ffmpeg=self.config.ffmpeg),
            timeout=options.process_timeout,
        )

        yield f"Transcribing {wav_path.name} ({options.transcriber.value}, lang={options.language})\n"
        if options.transcriber is TranscriberBackend.FASTER_WHISPER:
            yield from transcribe_local(
                wav_path,
                vtt_path,
                model_size=options.whisper_model_size,
                language=options.language,
            )
        else:
            yield from run_streaming(
                build_whisper_command(
                    wav_path,
                    output_base,
                    model=options.whisper_model,
                    language=options.language,
                    whisper_cli=self.config.whisper_cli,
                ),
                timeout=options.process_timeout,
            )

        if not vtt_path.exists():
            raise NotFoundError(f"Transcriber produced no caption file: {vtt_path.name}")

        return {"wav_path": wav_path.name, "vtt_path": vtt_path.name}

    def _extract(self, job: Job) -> Generator[str, None, dict[str, str]]:
        options = self.config.options
        video = self._video_path(job)
        frames_dir = self.job_dir(job.id) / (job.frames_dir or FRAMES_DIR)

        duration = probe_duration(video, ffprobe=self.config.ffprobe)
        plan = prepare_extraction(
            video,
            frames_dir,
            duration,
            target_frames=options.target_frames,
            ffmpeg=self.config.ffmpeg,
        )
        yield (
            f"Duration: {int(duration)}s, rate: {plan.fps:.3f} fps "
            f"(target {options.target_frames} frames)\n"
        )

        yield from run_streaming(plan.command, timeout=options.process_timeout)

        frames = collect_frames(frames_dir, plan.interval)
        yield f"Extracted {len(frames)} frames\n"
        return {"frames_dir": frames_dir.name}

    def _generate(self, job: Job) -> Generator[str, None, dict[str, str]]:
        options = self.config.options
        job_dir = self.job_dir(job.id)

        vtt_path = job_dir / (job.vtt_path or f"{VIDEO_STEM}.vtt")
        if not vtt_path.exists():
            raise NotFoundError("Captions not found. Run the transcribe step first.")

        frames_dir = job_dir / (job.frames_dir or FRAMES_DIR)
        frames = load_frames(frames_dir) if frames_dir.is_dir() else []
        if not frames:
            raise NotFoundError("No extracted frames found. Run the extract step first.")

        cues = parse_captions(vtt_path.read_text(encoding="utf-8"))
        output_dir = job_dir / (job.output_dir or OUTPUT_DIR)
        html_path = job_dir / f"{VIDEO_STEM}.html"

        yield from generate_article(
            cues,
            frames,
            output_dir=output_dir,
            html_path=html_path,
            content_service=self._get_content_service(),
            image_service=self._get_image_service(),
            section_count=options.section_count,
            window=options.window_seconds,
            lang=options.language,
        )
        return {"html_path": html_path.name, "output_dir": output_dir.name}

    # ----- services -----

    def _require_api_key(self) -> str:
        try:
            self.config.validate_for_generation()
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return self.config.get_api_key()

    def _get_content_service(self) -> ContentService:
        if self._content_service is None:
            from vidpost.services.gemini import GeminiContentService

            self._content_service = GeminiContentService(
                api_key=self._require_api_key(), model=self.config.options.content_model
            )
        return self._content_service

    def _get_image_service(self) -> ImageService:
        if self._image_service is None:
            from vidpost.services.gemini import GeminiImageService

            self._image_service = GeminiImageService(
                api_key=self._require_api_key(), model=self.config.options.image_model
            )
        return self._image_service
