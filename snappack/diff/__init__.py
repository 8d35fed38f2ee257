"""Diff helpers used by the reference strategies."""

from snappack.diff.engine import diff_values
from snappack.diff.formatting import MINUS, PLUS, render_line_diff, render_value_changes
from snappack.diff.models import MISSING_MARKER, ChangeKind, ValueChange, ValueDiffResult

__all__ = [
    "ChangeKind",
    "MISSING_MARKER",
    "ValueChange",
    "ValueDiffResult",
    "diff_values",
    "MINUS",
    "PLUS",
    "render_line_diff",
    "render_value_changes",
]
