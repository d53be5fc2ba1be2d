"""Error taxonomy for releasecast runs.

Nothing here is ever retried automatically.  Retry, where wanted, is the
business of the action implementations themselves.
"""

from __future__ import annotations


class ReleasecastError(Exception):
    """Base class for every error raised by releasecast."""


# ---------------------------------------------------------------------------
# Input errors: fail fast, before any task is scheduled
# ---------------------------------------------------------------------------


class InputError(ReleasecastError, ValueError):
    """Raised when run inputs are malformed or unavailable."""


class InvalidArtifactNameError(InputError):
    """Raised when an artifact file name cannot be parsed into an identity."""


class InvalidTagError(InputError):
    """Raised when a tag has no separator left to derive a manifest key from."""


class ArtifactRetrievalError(InputError):
    """Raised when an artifact cannot be fetched from its source."""


# ---------------------------------------------------------------------------
# Scheduling errors
# ---------------------------------------------------------------------------


class AcquisitionError(ReleasecastError, RuntimeError):
    """Raised when a concurrency unit cannot be obtained.

    Happens when the batch was cancelled by an earlier failure or when the
    caller's deadline has passed.
    """

    def __init__(self, message: str, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.task_id:
            return f"[{self.task_id}] {message}"
        return message


class TaskError(ReleasecastError, RuntimeError):
    """Wraps the failure of one task, annotated with the task's identifier.

    The original exception is kept as ``cause`` and chained as
    ``__cause__``.
    """

    def __init__(self, task_id: str, cause: BaseException) -> None:
        super().__init__(f"[{task_id}] error: {cause}")
        self.task_id = task_id
        self.cause = cause
        self.__cause__ = cause


class BarrierNotReachedError(ReleasecastError, RuntimeError):
    """Raised when phase-2 work is requested before phase 1 fully succeeded."""


class InvalidTransitionError(ReleasecastError, RuntimeError):
    """Raised when a requested run state transition is not valid."""


class CommandFailedError(ReleasecastError, RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip()
        message = f"command {argv[0] if argv else '?'} exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
