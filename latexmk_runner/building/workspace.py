"""
Workspace Manager

A Workspace is a uniquely-named temporary directory owned by exactly one
build. Inputs are staged into it under fixed names, latexmk runs inside it,
the artifact is copied out, and the directory is removed.

All filesystem work runs in worker threads so the event loop is never
blocked by a copy or a directory listing.
"""

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, Union

from dotenv import load_dotenv

from latexmk_runner.building.exceptions import CleanupError, RetrievalError, StagingError
from latexmk_runner.building.logger import _log_debug, _log_warning

load_dotenv()
LATEXMK_WORKSPACE_ROOT = os.getenv("LATEXMK_WORKSPACE_ROOT") or None

# Canonical names inside the workspace so latexmk's arguments never change
STAGED_INPUT_NAME = "input.tex"
ARTIFACT_NAME = "input.pdf"
LOG_NAME = "input.log"

PathLike = Union[str, Path]


class Workspace:
    """
    Exclusively-owned temporary build directory.

    Create with `await Workspace.create()`; release exactly once with
    `await workspace.release()` (later calls are no-ops).
    """

    def __init__(self, path: Path):
        self.path = path
        self._released = False

    @classmethod
    async def create(
        cls, prefix: str = "latexmk_", root: Optional[PathLike] = LATEXMK_WORKSPACE_ROOT
    ) -> "Workspace":
        """
        Allocate a fresh temporary directory.

        Raises:
            StagingError: The directory could not be created
        """
        try:
            path = await asyncio.to_thread(tempfile.mkdtemp, prefix=prefix, dir=root)
        except OSError as e:
            raise StagingError("Could not create workspace directory", original_error=e)
        _log_debug(f"Created workspace {path}")
        return cls(Path(path))

    @property
    def released(self) -> bool:
        return self._released

    def _destination(self, name: str, source: Path) -> Path:
        """Map a staged name to a path inside the workspace, rejecting escapes."""
        root = self.path.resolve()
        target = (root / name).resolve()
        if Path(name).is_absolute() or target == root or root not in target.parents:
            raise StagingError(
                f"Staged name '{name}' must be a relative path inside the workspace",
                source=source,
                destination=target,
            )
        return self.path / target.relative_to(root)

    def plan_staging(
        self,
        input_path: PathLike,
        dependencies: Sequence[PathLike] = (),
        renames: Optional[Mapping[str, str]] = None,
    ) -> List[Tuple[Path, Path]]:
        """
        Pair each source file to its destination inside the workspace.

        The input always becomes input.tex; dependencies keep their basename
        unless renames has an entry for their original path. A rename may
        name a subdirectory ("data/v2.json") but never a path outside the
        workspace.

        Raises:
            StagingError: A name escapes the workspace or two files would
                land on the same name
        """
        renames = renames or {}
        plan = [(Path(input_path), self.path / STAGED_INPUT_NAME)]
        taken = {Path(STAGED_INPUT_NAME): Path(input_path)}

        for dep in dependencies:
            key = str(dep)
            destination = self._destination(renames.get(key, Path(key).name), Path(dep))
            name = destination.relative_to(self.path)
            if name in taken:
                raise StagingError(
                    f"Dependency would overwrite staged file '{name}' "
                    f"(already used by {taken[name]})",
                    source=Path(dep),
                    destination=destination,
                )
            taken[name] = Path(dep)
            plan.append((Path(dep), destination))

        return plan

    def _copy_file(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

    async def _copy(self, source: Path, destination: Path) -> Path:
        try:
            await asyncio.to_thread(self._copy_file, source, destination)
        except OSError as e:
            raise StagingError(
                f"Could not stage {source.name}",
                source=source,
                destination=destination,
                original_error=e,
            )
        _log_debug(f"  Staged {source} -> {destination.relative_to(self.path)}")
        return destination

    async def stage(
        self,
        input_path: PathLike,
        dependencies: Sequence[PathLike] = (),
        renames: Optional[Mapping[str, str]] = None,
    ) -> List[Path]:
        """
        Copy the input and every dependency into the workspace concurrently.

        Returns once all copies have settled. If any copy failed, the first
        failure is raised after the in-flight copies finish; their results
        are discarded.

        Returns:
            Staged paths, input first

        Raises:
            StagingError: A copy failed or two files collide on a name
        """
        plan = self.plan_staging(input_path, dependencies, renames)
        tasks = [asyncio.ensure_future(self._copy(src, dst)) for src, dst in plan]

        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        failed = [task for task in tasks if task in done and task.exception() is not None]
        if failed:
            if pending:
                await asyncio.wait(pending)
            # Retrieve stragglers' exceptions so asyncio does not report them as unhandled
            for task in pending:
                task.exception()
            raise failed[0].exception()

        return [task.result() for task in tasks]

    async def retrieve(self, destination: PathLike, artifact_name: str = ARTIFACT_NAME) -> Path:
        """
        Copy the build artifact out of the workspace.

        Raises:
            RetrievalError: Artifact missing or the copy failed
        """
        artifact = self.path / artifact_name
        destination = Path(destination)

        exists = await asyncio.to_thread(artifact.is_file)
        if not exists:
            raise RetrievalError(
                f"Build did not produce {artifact_name}",
                artifact=artifact,
                destination=destination,
            )

        try:
            await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, artifact, destination)
        except OSError as e:
            raise RetrievalError(
                f"Could not copy {artifact_name} to {destination}",
                artifact=artifact,
                destination=destination,
                original_error=e,
            )

        _log_debug(f"Retrieved {artifact_name} -> {destination}")
        return destination

    def _remove_all(self) -> List[CleanupError]:
        failures = []
        try:
            entries = list(self.path.iterdir())
        except FileNotFoundError:
            return failures
        except OSError as e:
            return [CleanupError("Could not list workspace", path=self.path, original_error=e)]

        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as e:
                failures.append(
                    CleanupError(f"Could not remove {entry.name}", path=entry, original_error=e)
                )

        if not failures:
            try:
                self.path.rmdir()
            except OSError as e:
                failures.append(
                    CleanupError("Could not remove workspace", path=self.path, original_error=e)
                )

        return failures

    async def release(
        self, on_error: Optional[Callable[[CleanupError], None]] = None
    ) -> List[CleanupError]:
        """
        Remove everything in the workspace, then the workspace itself.

        Never raises. Each failure is logged as a warning, handed to on_error
        if given, and returned.
        """
        if self._released:
            return []
        self._released = True

        failures = await asyncio.to_thread(self._remove_all)
        for failure in failures:
            _log_warning(f"Workspace cleanup: {failure}")
            if on_error is not None:
                on_error(failure)

        if not failures:
            _log_debug(f"Released workspace {self.path}")
        return failures
