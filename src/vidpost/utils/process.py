"""External process execution with incremental output.

A child process is started with both pipes captured. One reader thread per
pipe pushes lines onto a shared queue; the caller drains that queue through a
plain iterator, so the stages never see threads or callbacks. The iterator is
finite: it yields every output line in arrival order and ends with a single
ProcessExit carrying the exit code.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from vidpost.errors import ExternalProcessError

logger = logging.getLogger(__name__)

_EOF = object()


@dataclass(frozen=True)
class OutputChunk:
    """A piece of output from stdout or stderr."""

    text: str
    stream: str = "stdout"


@dataclass(frozen=True)
class ProcessExit:
    """Completion signal for a finished process."""

    returncode: int
    elapsed: float = 0.0


def _program_name(cmd: Sequence[str]) -> str:
    return Path(cmd[0]).name if cmd else "process"


def _pump(pipe: IO[str], stream: str, chunks: queue.Queue) -> None:
    try:
        for line in iter(pipe.readline, ""):
            chunks.put(OutputChunk(text=line, stream=stream))
    finally:
        pipe.close()
        chunks.put(_EOF)


def _kill(proc: subprocess.Popen) -> None:
    proc.kill()
    proc.wait()


def iter_process_output(
    cmd: Sequence[str],
    timeout: float | None = None,
    cwd: str | Path | None = None,
) -> Iterator[OutputChunk | ProcessExit]:
    """Run a command and yield its output lines, then its exit status.

    Args:
        cmd: Command and arguments.
        timeout: Seconds the process may run in total (None = no limit).
        cwd: Working directory for the child.

    Yields:
        OutputChunk for each line of stdout/stderr, then one ProcessExit.

    Raises:
        ExternalProcessError: If the program cannot be started or times out.
    """
    name = _program_name(cmd)
    start_time = time.perf_counter()

    try:
        proc = subprocess.Popen(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            bufsize=1,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise ExternalProcessError(f"{name} not found. Is it installed and on PATH?") from e
    except OSError as e:
        raise ExternalProcessError(f"Failed to start {name}: {e}") from e

    logger.debug(f"Started {name} (pid={proc.pid}): {' '.join(map(str, cmd))}")

    chunks: queue.Queue = queue.Queue()
    for pipe, stream in ((proc.stdout, "stdout"), (proc.stderr, "stderr")):
        threading.Thread(target=_pump, args=(pipe, stream, chunks), daemon=True).start()

    deadline = time.monotonic() + timeout if timeout is not None else None

    def remaining() -> float | None:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    try:
        open_pipes = 2
        while open_pipes:
            try:
                item = chunks.get(timeout=remaining())
            except queue.Empty:
                _kill(proc)
                raise ExternalProcessError(f"{name} timed out after {timeout}s") from None

            if item is _EOF:
                open_pipes -= 1
                continue
            yield item

        try:
            returncode = proc.wait(timeout=remaining())
        except subprocess.TimeoutExpired:
            _kill(proc)
            raise ExternalProcessError(f"{name} timed out after {timeout}s") from None

        elapsed = time.perf_counter() - start_time
        logger.debug(f"{name} exited with code {returncode} in {elapsed:.2f}s")
        yield ProcessExit(returncode=returncode, elapsed=elapsed)

    finally:
        if proc.poll() is None:
            logger.warning(f"Stopping {name} (pid={proc.pid}): output consumer went away")
            _kill(proc)


def run_streaming(
    cmd: Sequence[str],
    timeout: float | None = None,
    cwd: str | Path | None = None,
) -> Iterator[str]:
    """Run a command, yielding output text and failing on a non-zero exit.

    Raises:
        ExternalProcessError: If the program cannot start, times out, or
            exits with a non-zero code.
    """
    for item in iter_process_output(cmd, timeout=timeout, cwd=cwd):
        if isinstance(item, ProcessExit):
            if item.returncode != 0:
                raise ExternalProcessError(
                    f"{_program_name(cmd)} exited with code {item.returncode}",
                    returncode=item.returncode,
                )
        else:
            yield item.text
