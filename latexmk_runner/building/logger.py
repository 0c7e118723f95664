"""
Building context logger.

Provides logging interface for the building context with automatic [build] prefix.
All building modules should import from this module, not from utils.logger directly.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from latexmk_runner.utils.logger import setup_logger as _setup_logger
from latexmk_runner.utils.timestamp import format_duration

load_dotenv()

CONTEXT_PREFIX = "[build]"


def setup_building_logger(log_dir: Path, verbose: bool = False) -> Path:
    """
    Setup logger for the building context.

    Args:
        log_dir: Directory for this build session
        verbose: Show DEBUG messages on the console as well

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="build",
        log_dir=log_dir,
        extra_provenance={"Build command": os.getenv("LATEXMK_COMMAND", "latexmk")},
        console_level="DEBUG" if verbose else "INFO",
    )


# Wrapper functions with automatic [build] prefix


def _log_info(message: str) -> None:
    """Log info message with [build] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [build] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [build] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [build] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [build] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level build logging helpers


def log_build_start(input_path: Path, output_path: Path, passes: int, workspace: Path) -> None:
    """Log start of a build with context."""
    _log_info(f"Starting build: {input_path.name}")
    _log_info(f"Building in {workspace}")
    _log_debug(f"  Source: {input_path}")
    _log_debug(f"  Output: {output_path}")
    _log_debug(f"  Passes: {passes}")


def log_build_result(
    input_name: str,
    result,  # BuildResult
    verbose: bool = False,
) -> None:
    """
    Log build result with diagnostics.

    Args:
        input_name: Name of the source file
        result: BuildResult from build()
        verbose: Show more warnings/errors (default: False)
    """
    elapsed = format_duration(result.elapsed_s)
    if result.success:
        _log_success(f"{input_name}: built in {result.passes_run} pass(es) ({elapsed})")
        _log_debug(f"  Output: {result.output_path}")
    else:
        _log_error(f"{input_name}: {result.error.stage} failed ({elapsed})")
        for line in str(result.error).splitlines():
            _log_error(f"  {line}")

    if result.warnings:
        _log_warning(f"{len(result.warnings)} warnings detected")
        warning_limit = 10 if verbose else 3
        for i, warn in enumerate(result.warnings[:warning_limit], 1):
            _log_debug(f"  Warning {i}: {warn}")
        if len(result.warnings) > warning_limit:
            _log_debug(f"  ... and {len(result.warnings) - warning_limit} more warnings")

    # raw=True keeps multi-line tool output free of per-line timestamps
    if verbose or not result.success:
        if result.stdout:
            logger.opt(raw=True).debug(
                f"\n{'=' * 80}\nLATEXMK STDOUT:\n{'=' * 80}\n{result.stdout}\n"
            )
        if result.stderr:
            logger.opt(raw=True).debug(
                f"\n{'=' * 80}\nLATEXMK STDERR:\n{'=' * 80}\n{result.stderr}\n"
            )
