"""
Build Pipeline

Top-level sequence for one build:

    validate -> resolve options -> create workspace -> stage -> latexmk passes
    -> retrieve artifact -> clean up

Every build reports exactly one result. Errors are returned inside the
BuildResult (and passed to the optional callback), never raised.
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from latexmk_runner.building.build_loop import Runner, run_passes
from latexmk_runner.building.exceptions import (
    BuildError,
    CleanupError,
    LatexmkRunnerError,
    RetrievalError,
    StagingError,
    ValidationError,
)
from latexmk_runner.building.log_parser import read_latex_log
from latexmk_runner.building.logger import _log_debug, _log_error, _log_warning, log_build_start
from latexmk_runner.building.options import BuildOptions, resolve_options
from latexmk_runner.building.process_runner import run_process
from latexmk_runner.building.workspace import LOG_NAME, Workspace
from latexmk_runner.utils.pdf_processing import page_count

Callback = Callable[[Optional[LatexmkRunnerError], Optional[Path]], Any]
OptionsLike = Union[None, Mapping[str, Any], BuildOptions]


@dataclass
class BuildResult:
    """
    Outcome of one build.

    Attributes:
        success: Whether the artifact reached output_path
        output_path: Destination of the artifact (None on failure)
        error: The single error that ended the build (None on success)
        passes_run: latexmk invocations attempted
        stdout: Combined standard output of all passes
        stderr: Combined standard error of all passes
        warnings: Warnings scanned from the LaTeX log
        page_count: Pages in the produced PDF (None if unknown)
        elapsed_s: Wall-clock time until the result was delivered
    """

    success: bool
    output_path: Optional[Path] = None
    error: Optional[LatexmkRunnerError] = None
    passes_run: int = 0
    stdout: str = ""
    stderr: str = ""
    warnings: List[str] = field(default_factory=list)
    page_count: Optional[int] = None
    elapsed_s: float = 0.0


class _CompletionGuard:
    """One-shot result cell scoped to a single build."""

    def __init__(self, callback: Optional[Callback] = None):
        self._callback = callback
        self._result: Optional[BuildResult] = None

    @property
    def delivered(self) -> bool:
        return self._result is not None

    def deliver(self, result: BuildResult) -> BuildResult:
        if self._result is not None:
            _log_warning("Ignoring second result for a build that already reported")
            return self._result
        self._result = result
        if self._callback is not None:
            self._callback(result.error, result.output_path)
        return result


def validate_input(input_path: Path, options: BuildOptions) -> None:
    """
    Check the input file before anything touches the filesystem.

    Raises:
        ValidationError: Extension does not denote a TeX source (unless
            options.ignore_extension_check) or the file does not exist
    """
    if not options.ignore_extension_check and "tex" not in input_path.suffix.lower():
        raise ValidationError(
            f"Input file does not have a '.tex' extension: {input_path}. "
            "Set 'ignore_extension_check' to skip this check.",
            field="input_path",
        )
    if not input_path.is_file():
        raise ValidationError(f"Input file does not exist: {input_path}", field="input_path")


async def build(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    options: OptionsLike = None,
    callback: Optional[Callback] = None,
    *,
    runner: Runner = run_process,
    on_cleanup_error: Optional[Callable[[CleanupError], None]] = None,
) -> BuildResult:
    """
    Build input_path in an isolated workspace and copy the PDF to output_path.

    The result is delivered exactly once: returned, and passed to
    callback(error, output_path) if a callback is given. On success and on
    retrieval failure the result is delivered before the workspace is
    removed; on staging and build failures the workspace is removed first.
    Cleanup problems never change the result; they are logged and passed
    to on_cleanup_error.

    Args:
        input_path: LaTeX source file
        output_path: Where the built PDF should be written
        options: Caller options (mapping or BuildOptions), merged over defaults
        callback: Called once with (error, output_path)
        runner: Process runner used for each pass
        on_cleanup_error: Receives each CleanupError

    Returns:
        BuildResult
    """
    start = time.monotonic()
    guard = _CompletionGuard(callback)
    input_path = Path(input_path)
    output_path = Path(output_path)

    def finish(result: BuildResult) -> BuildResult:
        result.elapsed_s = time.monotonic() - start
        if result.error is not None:
            _log_error(f"{result.error.stage} failed: {result.error.message}")
        return guard.deliver(result)

    # Validating / Resolving: no side effects before this point succeeds
    try:
        resolved = resolve_options(options)
        validate_input(input_path, resolved)
    except ValidationError as e:
        return finish(BuildResult(success=False, error=e))

    try:
        workspace = await Workspace.create()
    except StagingError as e:
        return finish(BuildResult(success=False, error=e))

    log_build_start(input_path, output_path, resolved.passes, workspace.path)

    try:
        try:
            await workspace.stage(input_path, resolved.dependencies, resolved.dependency_renames)
            outcomes = await run_passes(resolved, workspace.path, runner)
        except StagingError as e:
            await workspace.release(on_cleanup_error)
            return finish(BuildResult(success=False, error=e))
        except BuildError as e:
            await workspace.release(on_cleanup_error)
            return finish(
                BuildResult(
                    success=False,
                    error=e,
                    passes_run=e.pass_index or 0,
                    stdout=e.stdout,
                    stderr=e.stderr,
                )
            )

        _, warnings = await asyncio.to_thread(read_latex_log, workspace.path / LOG_NAME)
        diagnostics = dict(
            passes_run=len(outcomes),
            stdout="\n".join(outcome.stdout for outcome in outcomes),
            stderr="\n".join(outcome.stderr for outcome in outcomes),
            warnings=warnings,
        )

        # Artifact must leave the workspace before it is released
        try:
            final_path = await workspace.retrieve(output_path)
        except RetrievalError as e:
            return finish(BuildResult(success=False, error=e, **diagnostics))

        pages = None
        if final_path.suffix.lower() == ".pdf":
            pages = await asyncio.to_thread(page_count, final_path)

        return finish(
            BuildResult(success=True, output_path=final_path, page_count=pages, **diagnostics)
        )
    except Exception as e:
        # A result already delivered (e.g. the callback itself raised) is final
        if guard.delivered:
            raise
        await workspace.release(on_cleanup_error)
        return finish(
            BuildResult(
                success=False,
                error=BuildError("Unexpected failure during build", original_error=e),
            )
        )
    finally:
        # No-op when an error path already released it
        await workspace.release(on_cleanup_error)
        _log_debug(f"Build of {input_path.name} finished")


def build_sync(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    options: OptionsLike = None,
    callback: Optional[Callback] = None,
    **kwargs,
) -> BuildResult:
    """Run build() to completion from synchronous code."""
    return asyncio.run(build(input_path, output_path, options, callback, **kwargs))
