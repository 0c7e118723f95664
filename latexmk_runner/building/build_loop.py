"""
Build Loop

Runs latexmk a fixed number of times inside a staged workspace. Passes are
strictly sequential because each one may read auxiliary files (.aux, .toc,
.bbl) written by the previous one.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from latexmk_runner.building.exceptions import BuildError
from latexmk_runner.building.log_parser import read_latex_log
from latexmk_runner.building.logger import _log_debug, _log_info
from latexmk_runner.building.options import BuildOptions
from latexmk_runner.building.process_runner import ProcessOutcome, run_process
from latexmk_runner.building.workspace import LOG_NAME, STAGED_INPUT_NAME

Runner = Callable[..., Awaitable[ProcessOutcome]]


def _pass_failure(
    outcome: ProcessOutcome, options: BuildOptions, pass_index: int
) -> Optional[str]:
    """Describe why a pass failed, or None if it succeeded."""
    if outcome.launch_error is not None:
        return f"Could not launch '{options.command}' on pass {pass_index}"
    if outcome.timed_out:
        return f"Pass {pass_index} timed out after {options.timeout_s}s"
    if outcome.exit_code != 0 and not options.allow_nonzero_exit:
        return f"Pass {pass_index} exited with code {outcome.exit_code}"
    return None


async def run_passes(
    options: BuildOptions,
    workspace_path: Path,
    runner: Runner = run_process,
) -> List[ProcessOutcome]:
    """
    Invoke the build command options.passes times, stopping at the first failure.

    Each pass runs `command *args input.tex` with workspace_path as the
    working directory.

    Args:
        options: Resolved build options
        workspace_path: Staged workspace directory
        runner: Process runner (run_process, or a stand-in for tests)

    Returns:
        One ProcessOutcome per pass, in order

    Raises:
        BuildError: A pass failed to launch, timed out, or exited nonzero
    """
    argv = list(options.args) + [STAGED_INPUT_NAME]
    outcomes = []

    for pass_index in range(1, options.passes + 1):
        _log_info(f"Pass {pass_index}/{options.passes}: {options.command} {' '.join(argv)}")
        outcome = await runner(options.command, argv, workspace_path, timeout_s=options.timeout_s)
        outcomes.append(outcome)

        failure = _pass_failure(outcome, options, pass_index)
        if failure is not None:
            errors, _ = await asyncio.to_thread(read_latex_log, workspace_path / LOG_NAME)
            raise BuildError(
                failure,
                pass_index=pass_index,
                exit_code=outcome.exit_code,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
                errors=errors,
                original_error=outcome.launch_error,
            )

        _log_debug(f"  Pass {pass_index} finished in {outcome.duration_s:.2f}s")

    return outcomes
