"""Exceptions for the building context, one per pipeline stage."""

from pathlib import Path
from typing import List, Optional


class LatexmkRunnerError(Exception):
    """
    Base class for every error a build can report.

    Attributes:
        message: Error description
        stage: Pipeline stage that failed (e.g., 'validating', 'building')
    """

    stage = "unknown"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LatexmkRunnerError, ValueError):
    """
    Raised for bad input before any side effect: wrong extension, missing
    input file, or invalid options such as a non-positive pass count.

    Attributes:
        field: Name of the offending option or argument, if any
    """

    stage = "validating"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StagingError(LatexmkRunnerError):
    """
    Raised when the workspace cannot be created or a file cannot be copied into it.

    Attributes:
        source: File that was being copied
        destination: Target path inside the workspace
        original_error: The underlying OSError
    """

    stage = "staging"

    def __init__(
        self,
        message: str,
        source: Optional[Path] = None,
        destination: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.source = source
        self.destination = destination
        self.original_error = original_error

        parts = [message]
        if source is not None:
            parts.append(f"Source: {source}")
        if destination is not None:
            parts.append(f"Destination: {destination}")
        if original_error is not None:
            parts.append(f"Original error: {original_error}")

        Exception.__init__(self, "\n".join(parts))


class BuildError(LatexmkRunnerError):
    """
    Raised when a latexmk pass fails to launch, times out, or exits nonzero.

    Attributes:
        pass_index: 1-based index of the failing pass
        exit_code: Process exit code (None if it never started)
        stdout: Output accumulated during the failing pass
        stderr: Error output accumulated during the failing pass
        errors: Error lines scanned from the LaTeX log, if available
        original_error: Launch error from the OS, if any
    """

    stage = "building"

    def __init__(
        self,
        message: str,
        pass_index: Optional[int] = None,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        errors: Optional[List[str]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.pass_index = pass_index
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.errors = list(errors or [])
        self.original_error = original_error

        parts = [message]
        if original_error is not None:
            parts.append(f"Original error: {original_error}")
        if self.errors:
            parts.append("LaTeX errors:")
            parts.extend(f"  {err}" for err in self.errors[:5])
            if len(self.errors) > 5:
                parts.append(f"  ... and {len(self.errors) - 5} more")

        Exception.__init__(self, "\n".join(parts))


class RetrievalError(LatexmkRunnerError):
    """
    Raised when the built artifact cannot be copied to the caller's output path.

    Usually means the build finished without producing the artifact.
    """

    stage = "retrieving"

    def __init__(
        self,
        message: str,
        artifact: Optional[Path] = None,
        destination: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.artifact = artifact
        self.destination = destination
        self.original_error = original_error

        parts = [message]
        if original_error is not None:
            parts.append(f"Original error: {original_error}")

        Exception.__init__(self, "\n".join(parts))


class CleanupError(LatexmkRunnerError):
    """
    A workspace entry that could not be removed.

    Never reported as a build's result; only logged and handed to the
    optional cleanup side channel.
    """

    stage = "cleaning_up"

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.path = path
        self.original_error = original_error

        text = message if original_error is None else f"{message}: {original_error}"
        Exception.__init__(self, text)
