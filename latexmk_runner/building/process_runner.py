"""
Process Runner

Runs one external command in a working directory and accumulates its output
as it streams in. Launch failures (command not found, not executable) are
reported in the outcome rather than raised; the caller decides what counts
as failure.
"""

import asyncio
import codecs
import contextlib
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from latexmk_runner.building.logger import _log_debug

# Seconds between SIGTERM and SIGKILL when a timed-out process is stopped
KILL_GRACE_S = 5.0

# Bytes read per pipe read; lines of any length are accepted
READ_CHUNK_SIZE = 65536


@dataclass
class ProcessOutcome:
    """
    Everything a single process invocation reports.

    Attributes:
        stdout: Accumulated standard output
        stderr: Accumulated standard error
        exit_code: Return code (None if the process never started)
        launch_error: OSError raised while starting the process, if any
        timed_out: The process was killed after exceeding its timeout
        duration_s: Wall-clock duration
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    launch_error: Optional[OSError] = None
    timed_out: bool = False
    duration_s: float = 0.0

    @property
    def launched(self) -> bool:
        return self.launch_error is None


async def _accumulate(stream: asyncio.StreamReader, chunks: List[str], label: str) -> None:
    """Read a pipe in fixed-size chunks until EOF, appending decoded text to chunks."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(READ_CHUNK_SIZE)
        text = decoder.decode(data, final=not data)
        if text:
            chunks.append(text)
            for line in text.splitlines():
                _log_debug(f"  {label}| {line}")
        if not data:
            break


async def _stop(proc: asyncio.subprocess.Process) -> None:
    """SIGTERM the process group, escalating to SIGKILL after a grace period."""
    try:
        pgid = os.getpgid(proc.pid)
    except (OSError, ProcessLookupError):
        return

    with contextlib.suppress(OSError, ProcessLookupError):
        os.killpg(pgid, signal.SIGTERM)

    try:
        await asyncio.wait_for(proc.wait(), timeout=KILL_GRACE_S)
    except asyncio.TimeoutError:
        with contextlib.suppress(OSError, ProcessLookupError):
            os.killpg(pgid, signal.SIGKILL)
        await proc.wait()


async def run_process(
    command: str,
    args: Sequence[str],
    cwd: Union[str, Path],
    *,
    env: Optional[Mapping[str, str]] = None,
    timeout_s: Optional[float] = None,
) -> ProcessOutcome:
    """
    Run `command args...` inside cwd and collect its output.

    stdout and stderr are drained concurrently while the process runs, so a
    chatty tool never blocks on a full pipe.

    Args:
        command: Executable name or path
        args: Arguments passed after the command
        cwd: Working directory for the process
        env: Environment for the process (None inherits the current one)
        timeout_s: Kill the process after this many seconds (None waits forever)

    Returns:
        ProcessOutcome with the accumulated streams and either an exit code
        or a launch error
    """
    start = time.monotonic()
    _log_debug(f"Running: {command} {' '.join(args)} (cwd={cwd})")

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            env=dict(env) if env is not None else None,
            start_new_session=True,  # own process group so a timeout kills latexmk's children too
        )
    except OSError as e:
        return ProcessOutcome(launch_error=e, duration_s=time.monotonic() - start)

    stdout_chunks: List[str] = []
    stderr_chunks: List[str] = []
    readers = asyncio.gather(
        _accumulate(proc.stdout, stdout_chunks, "out"),
        _accumulate(proc.stderr, stderr_chunks, "err"),
    )

    timed_out = False
    try:
        await asyncio.wait_for(asyncio.shield(readers), timeout=timeout_s)
    except asyncio.TimeoutError:
        timed_out = True
        await _stop(proc)
    except Exception:
        await _stop(proc)
        raise
    # Pipes close once the process (group) is gone; collect whatever is left
    await readers
    exit_code = await proc.wait()

    return ProcessOutcome(
        stdout="".join(stdout_chunks),
        stderr="".join(stderr_chunks),
        exit_code=exit_code,
        timed_out=timed_out,
        duration_s=time.monotonic() - start,
    )
