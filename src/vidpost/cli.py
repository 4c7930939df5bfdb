"""Command-line interface for vidpost."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from tqdm import tqdm

from vidpost import Pipeline, __version__
from vidpost.config import TranscriberBackend
from vidpost.errors import PipelineError
from vidpost.models.job import Job, Step
from vidpost.models.schema import EventType
from vidpost.stages.frames import load_frames
from vidpost.stages.selection import copy_selected, default_selection_dir, select_evenly
from vidpost.utils.logging import get_logger, set_level

app = typer.Typer(
    name="vidpost",
    help="Turn a talk video into an illustrated article.",
    add_completion=False,
    no_args_is_help=True,
)

DataDirOption = Annotated[
    Path,
    typer.Option("--data-dir", "-d", help="Directory for job records and artifacts"),
]
QuietOption = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Suppress progress output"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"vidpost {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """vidpost: Turn a talk video into an illustrated article."""
    pass


def _fail(message: str) -> NoReturn:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _configure_logging(quiet: bool) -> None:
    level = logging.WARNING if quiet else logging.INFO
    get_logger(level=level)
    set_level(level)


def _make_pipeline(
    data_dir: Path,
    target_frames: int | None = None,
    sections: int | None = None,
    language: str | None = None,
    transcriber: TranscriberBackend | None = None,
    whisper_model: str | None = None,
) -> Pipeline:
    options: dict = {}
    if target_frames is not None:
        options["target_frames"] = target_frames
    if sections is not None:
        options["section_count"] = sections
    if language is not None:
        options["language"] = language
    if transcriber is not None:
        options["transcriber"] = transcriber
    if whisper_model is not None:
        options["whisper_model"] = whisper_model
    return Pipeline(data_dir=str(data_dir), options=options)


def _stream(pipeline: Pipeline, job_id: str, step: Step, quiet: bool) -> None:
    """Run a step and render its events; exit non-zero if it failed."""
    total = 100 if step is Step.ALL else None
    failure: str | None = None

    with tqdm(total=total, desc=step.value, unit="%", disable=quiet or total is None) as bar:
        for event in pipeline.run(job_id, step):
            if event.type is EventType.PROGRESS:
                bar.update(int(event.data) - bar.n)
            elif event.type is EventType.ERROR:
                failure = event.data
            elif not quiet:
                text = event.data.rstrip("\n")
                if text:
                    tqdm.write(text)

    if failure is not None:
        _fail(failure)


def _describe(job: Job) -> str:
    flags = "".join(
        "x" if done else "-"
        for done in (job.transcribe_done, job.extract_done, job.generate_done)
    )
    created = job.created_at.strftime("%Y-%m-%d %H:%M")
    return f"{job.id}  {job.status.value:<12} [{flags}]  {created}  {job.name}"


@app.command()
def process(
    source: Annotated[
        Path,
        typer.Argument(
            help="Path to a video file (.mp4, .mov, .avi, .mkv, .webm)",
            exists=True,
            readable=True,
        ),
    ],
    data_dir: DataDirOption = Path("./data"),
    target_frames: Annotated[
        Optional[int],
        typer.Option("--frames", "-n", help="Number of frames to sample", min=1),
    ] = None,
    sections: Annotated[
        Optional[int],
        typer.Option("--sections", "-s", help="Number of article sections", min=1),
    ] = None,
    language: Annotated[
        Optional[str],
        typer.Option("--language", "-l", help="Spoken language (e.g. ja, en)"),
    ] = None,
    transcriber: Annotated[
        Optional[TranscriberBackend],
        typer.Option("--transcriber", "-t", help="Speech-to-text engine"),
    ] = None,
    whisper_model: Annotated[
        Optional[str],
        typer.Option("--whisper-model", "-m", help="ggml model file for whisper-cli"),
    ] = None,
    quiet: QuietOption = False,
) -> None:
    """Create a job for a video and run every step.

    Example:
        vidpost process talk.mp4 --sections 4
    """
    _configure_logging(quiet)

    try:
        pipeline = _make_pipeline(
            data_dir, target_frames, sections, language, transcriber, whisper_model
        )
        job = pipeline.create_job(source)
    except (PipelineError, ValueError) as e:
        _fail(str(e))

    if not quiet:
        typer.echo(f"Job {job.id} created")

    _stream(pipeline, job.id, Step.ALL, quiet)

    job = pipeline.get_job(job.id)
    if job.html_path:
        typer.echo(str(pipeline.job_dir(job.id) / job.html_path))


@app.command()
def new(
    source: Annotated[
        Path,
        typer.Argument(help="Path to a video file", exists=True, readable=True),
    ],
    name: Annotated[
        Optional[str],
        typer.Option("--name", help="Display name (default: file name)"),
    ] = None,
    data_dir: DataDirOption = Path("./data"),
) -> None:
    """Create a job without running it. Prints the job id."""
    _configure_logging(quiet=True)
    try:
        job = Pipeline(data_dir=str(data_dir)).create_job(source, name=name)
    except PipelineError as e:
        _fail(str(e))
    typer.echo(job.id)


@app.command()
def run(
    job_id: Annotated[str, typer.Argument(help="Job id")],
    step: Annotated[
        Step,
        typer.Argument(help="Step to run"),
    ] = Step.ALL,
    data_dir: DataDirOption = Path("./data"),
    target_frames: Annotated[
        Optional[int],
        typer.Option("--frames", "-n", help="Number of frames to sample", min=1),
    ] = None,
    sections: Annotated[
        Optional[int],
        typer.Option("--sections", "-s", help="Number of article sections", min=1),
    ] = None,
    language: Annotated[
        Optional[str],
        typer.Option("--language", "-l", help="Spoken language (e.g. ja, en)"),
    ] = None,
    transcriber: Annotated[
        Optional[TranscriberBackend],
        typer.Option("--transcriber", "-t", help="Speech-to-text engine"),
    ] = None,
    quiet: QuietOption = False,
) -> None:
    """Run one step (or all steps) of an existing job."""
    _configure_logging(quiet)
    pipeline = _make_pipeline(data_dir, target_frames, sections, language, transcriber)
    _stream(pipeline, job_id, step, quiet)


@app.command("list")
def list_jobs(
    data_dir: DataDirOption = Path("./data"),
) -> None:
    """List jobs, oldest first."""
    _configure_logging(quiet=True)
    jobs = Pipeline(data_dir=str(data_dir)).list_jobs()
    if not jobs:
        typer.echo("No jobs.")
        return
    for job in jobs:
        typer.echo(_describe(job))


@app.command()
def show(
    job_id: Annotated[str, typer.Argument(help="Job id")],
    data_dir: DataDirOption = Path("./data"),
) -> None:
    """Print a job record as JSON."""
    _configure_logging(quiet=True)
    try:
        job = Pipeline(data_dir=str(data_dir)).get_job(job_id)
    except PipelineError as e:
        _fail(str(e))
    typer.echo(json.dumps(job.model_dump(mode="json"), indent=2, ensure_ascii=False))


@app.command()
def delete(
    job_id: Annotated[str, typer.Argument(help="Job id")],
    data_dir: DataDirOption = Path("./data"),
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Delete a job and all of its artifacts."""
    _configure_logging(quiet=True)
    if not yes:
        typer.confirm(f"Delete job {job_id} and its files?", abort=True)
    try:
        Pipeline(data_dir=str(data_dir)).delete_job(job_id)
    except PipelineError as e:
        _fail(str(e))
    typer.echo(f"Deleted {job_id}")


@app.command()
def select(
    frames_dir: Annotated[
        Path,
        typer.Argument(help="Directory of extracted frames", exists=True, file_okay=False),
    ],
    count: Annotated[
        int,
        typer.Option("--count", "-k", help="Number of frames to pick", min=1),
    ] = 4,
    output_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--output-dir", "-o", help="Where to copy picks (default: sibling <name>_selected dir)"
        ),
    ] = None,
    quiet: QuietOption = False,
) -> None:
    """Pick the best frame from each of COUNT even segments."""
    _configure_logging(quiet)
    try:
        frames = load_frames(frames_dir)
        picks = select_evenly(frames, count)
        paths = copy_selected(picks, output_dir or default_selection_dir(frames_dir))
    except PipelineError as e:
        _fail(str(e))

    for frame, path in zip(picks, paths):
        typer.echo(f"{path}  ({frame.path.name}, {frame.timecode})")


if __name__ == "__main__":
    app()
