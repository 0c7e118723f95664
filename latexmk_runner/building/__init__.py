"""
Building Context

Responsibilities:
- Resolves build options against the defaults
- Stages the source and its dependencies into a private workspace
- Runs latexmk for the configured number of passes
- Copies the PDF out and removes the workspace

Owns: workspaces, latexmk invocation, build results
Never: Parses or modifies the document being built
"""

from latexmk_runner.building.exceptions import (
    BuildError,
    CleanupError,
    LatexmkRunnerError,
    RetrievalError,
    StagingError,
    ValidationError,
)
from latexmk_runner.building.options import (
    DEFAULT_ARGS,
    BuildOptions,
    load_options_file,
    merge_args,
    resolve_options,
)
from latexmk_runner.building.pipeline import BuildResult, build, build_sync, validate_input

__all__ = [
    "DEFAULT_ARGS",
    "BuildError",
    "BuildOptions",
    "BuildResult",
    "CleanupError",
    "LatexmkRunnerError",
    "RetrievalError",
    "StagingError",
    "ValidationError",
    "build",
    "build_sync",
    "load_options_file",
    "merge_args",
    "resolve_options",
    "validate_input",
]
