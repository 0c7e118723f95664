"""
Scan LaTeX log files for error and warning lines.

Used only to enrich build diagnostics; the document itself is never parsed.
"""

import re
from pathlib import Path
from typing import List, Tuple

ERROR_LINE = re.compile(r"^! (.+)$", re.MULTILINE)

# Fatal conditions that are not always reported on a "!" line
FATAL_PATTERNS = [
    r"Undefined control sequence",
    r"File ended while scanning use of",
    r"Emergency stop",
    r"LaTeX Error: File `[^']+' not found",
]

WARNING_PATTERNS = [
    re.compile(r"LaTeX Warning: (.+)", re.MULTILINE),
    re.compile(r"Package \w+ Warning: (.+)", re.MULTILINE),
    re.compile(r"Overfull \\hbox \((.+)\)", re.MULTILINE),
    re.compile(r"Underfull \\hbox \((.+)\)", re.MULTILINE),
]


def parse_latex_log(log_content: str) -> Tuple[List[str], List[str]]:
    """
    Parse LaTeX log content for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = [match.group(1).strip() for match in ERROR_LINE.finditer(log_content)]

    for pattern in FATAL_PATTERNS:
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match:
            line = match.group(1).strip()
            if not any(line in err for err in errors):
                errors.append(line)

    warnings = []
    for compiled in WARNING_PATTERNS:
        for match in compiled.finditer(log_content):
            warnings.append(match.group(1).strip())

    return errors, warnings


def read_latex_log(log_file: Path) -> Tuple[List[str], List[str]]:
    """
    Read and parse a log file, returning empty lists if it does not exist.

    pdflatex writes logs in latin-1 (font metadata is not valid UTF-8).
    """
    if not log_file.exists():
        return [], []
    return parse_latex_log(log_file.read_text(encoding="latin-1"))
