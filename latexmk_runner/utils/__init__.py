"""
Shared utilities for latexmk-runner.

Common functionality used across the package:
- Logger setup with provenance
- Timestamps for log directories
- PDF helpers
"""

from latexmk_runner.utils.timestamp import format_duration, now

__all__ = ["format_duration", "now"]
