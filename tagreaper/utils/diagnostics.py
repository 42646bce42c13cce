"""JSON-shaped diagnostic lines.

Discovery and deletion problems are reported as standalone ``{"error": "..."}``
objects on standard output, interleaved with normal output as they happen.
"""

from __future__ import annotations

import json
import sys
from typing import Optional, TextIO


def format_error(message: str) -> str:
    """Render a diagnostic message as a single-line JSON object."""
    return json.dumps({"error": message})


def emit_error(message: str, stream: Optional[TextIO] = None) -> None:
    """Write a diagnostic line to standard output (or the given stream)."""
    out = stream or sys.stdout
    out.write(format_error(message) + "\n")
    out.flush()
