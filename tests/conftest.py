"""Shared fixtures for the latexmk-runner test suite."""

from pathlib import Path
from typing import List, Optional

import pytest

from latexmk_runner.building.process_runner import ProcessOutcome
from latexmk_runner.building.workspace import Workspace

MINIMAL_TEX = r"""
\documentclass{article}
\begin{document}
Hello World
\end{document}
"""


class FakeRunner:
    """
    Stand-in for run_process that records calls and writes input.pdf.

    Args:
        fail_on_pass: 1-based pass index that exits nonzero (None never fails)
        launch_error: Report this OSError on every call instead of running
        produce_artifact: Write input.pdf into the workspace on success
    """

    def __init__(
        self,
        fail_on_pass: Optional[int] = None,
        launch_error: Optional[OSError] = None,
        produce_artifact: bool = True,
    ):
        self.fail_on_pass = fail_on_pass
        self.launch_error = launch_error
        self.produce_artifact = produce_artifact
        self.calls: List[dict] = []
        self.staged_files: List[List[str]] = []

    async def __call__(self, command, args, cwd, **kwargs) -> ProcessOutcome:
        cwd = Path(cwd)
        self.calls.append({"command": command, "args": list(args), "cwd": cwd, **kwargs})
        self.staged_files.append(sorted(p.name for p in cwd.iterdir()))
        pass_index = len(self.calls)

        if self.launch_error is not None:
            return ProcessOutcome(launch_error=self.launch_error)

        if pass_index == self.fail_on_pass:
            (cwd / "input.log").write_text("! Undefined control sequence.\n", encoding="latin-1")
            return ProcessOutcome(stdout=f"pass {pass_index}\n", stderr="boom\n", exit_code=12)

        if self.produce_artifact:
            (cwd / "input.pdf").write_bytes(b"%PDF-1.4\n% fake pass " + str(pass_index).encode())
        return ProcessOutcome(stdout=f"pass {pass_index}\n", exit_code=0)

    @property
    def workspaces(self) -> List[Path]:
        return [call["cwd"] for call in self.calls]


@pytest.fixture
def tex_file(tmp_path: Path) -> Path:
    """A small, valid LaTeX source file."""
    path = tmp_path / "src" / "paper.tex"
    path.parent.mkdir()
    path.write_text(MINIMAL_TEX)
    return path


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for FakeRunner with custom failure behaviour."""
    return FakeRunner


class WorkspaceTracker:
    """Records every workspace a test creates."""

    def __init__(self, root: Path):
        self.root = root
        self.created: List[Path] = []

    def leftovers(self) -> List[Path]:
        return sorted(self.root.iterdir())


@pytest.fixture
def workspaces(tmp_path: Path, monkeypatch) -> WorkspaceTracker:
    """Route workspaces into tmp_path and count how many get created."""
    tracker = WorkspaceTracker(tmp_path / "workspaces")
    tracker.root.mkdir()

    original = Workspace.create.__func__

    async def create(cls, prefix="latexmk_", root=tracker.root):
        workspace = await original(cls, prefix=prefix, root=root)
        tracker.created.append(workspace.path)
        return workspace

    monkeypatch.setattr(Workspace, "create", classmethod(create))
    return tracker
