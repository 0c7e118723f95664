"""
latexmk-runner - isolated latexmk builds

Copies a LaTeX source file and its dependencies into a throwaway workspace,
runs latexmk there one or more times, and copies the produced PDF back out.

Architecture:
- Building Context: option resolution, workspace staging, latexmk passes,
  artifact retrieval and cleanup
- Utils: logging setup, timestamps, PDF helpers
"""

__version__ = "0.1.0"

from latexmk_runner.building import (
    BuildError,
    BuildOptions,
    BuildResult,
    CleanupError,
    LatexmkRunnerError,
    RetrievalError,
    StagingError,
    ValidationError,
    build,
    build_sync,
    resolve_options,
)

__all__ = [
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
    "resolve_options",
]
