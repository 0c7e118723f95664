"""
loguru sinks shared by every command.

One session writes a DEBUG-level file under its own log directory and echoes
to stdout at a configurable level. The session opens with a provenance block
so a log file on its own says which invocation produced it.
"""

import sys
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: Optional[Mapping[str, object]] = None,
    level_colors: Optional[Mapping[str, str]] = None,
    console_level: str = "INFO",
) -> Path:
    """
    Replace loguru's sinks with a session log file plus stdout.

    Args:
        context_name: Log file stem, e.g. "build" gives build.log
        log_dir: Session directory, created if missing
        extra_provenance: Extra lines for the provenance block
        level_colors: Per-level console colour overrides
        console_level: Lowest level echoed to stdout

    Returns:
        Path to the session log file
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()
    for level_name, color in {**LEVEL_COLORS, **(level_colors or {})}.items():
        logger.level(level_name, color=color)

    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    log_provenance(extra_provenance)
    return log_file


def log_provenance(extra_context: Optional[Mapping[str, object]] = None) -> None:
    """Write the invocation (argv, cwd, interpreter) and any extra lines."""
    lines = {
        "Command": " ".join(sys.argv),
        "Working directory": Path.cwd(),
        "Python": sys.version.split()[0],
        **(extra_context or {}),
    }
    logger.info("=" * 80)
    for key, value in lines.items():
        logger.info(f"{key}: {value}")
    logger.info("=" * 80)
