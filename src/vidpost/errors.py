"""Exception hierarchy for vidpost.

Every error raised by a pipeline stage derives from PipelineError, so callers
can catch the whole family at one seam and record the message verbatim.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Error during pipeline processing."""

    pass


class ValidationError(PipelineError, ValueError):
    """Bad input detected before any external call was made."""

    pass


class ExternalProcessError(PipelineError):
    """An external tool failed to start or exited with a non-zero code."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ParseError(PipelineError):
    """A caption document or service response could not be used."""

    pass


class PreconditionError(PipelineError):
    """A component was called with inputs that violate its contract."""

    pass


class NotFoundError(PipelineError):
    """A job or a derived artifact required by a step does not exist."""

    pass


class InvalidTransitionError(PipelineError):
    """A job status change is not allowed by the state machine."""

    pass


class JobBusyError(PipelineError):
    """Another run already holds the lease for this job."""

    pass
