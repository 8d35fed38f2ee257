"""Human-readable rendering for snapshot diffs."""

from __future__ import annotations

import difflib
import json
from typing import Any

from snappack.diff.models import MISSING_MARKER, ValueDiffResult

MINUS = "−"
PLUS = "+"


def render_line_diff(reference: str, candidate: str, *, context: int = 3) -> str:
    """Render a unified diff of two texts using ``−``/``+`` markers."""
    lines: list[str] = []
    in_hunks = False
    for line in difflib.unified_diff(
        reference.splitlines(),
        candidate.splitlines(),
        fromfile="reference",
        tofile="candidate",
        lineterm="",
        n=context,
    ):
        # File headers come before the first hunk.
        if not in_hunks:
            if not line.startswith("@@"):
                continue
            in_hunks = True
        if line.startswith("-"):
            lines.append(f"{MINUS}{line[1:]}")
        else:
            lines.append(line)
    return "\n".join(lines)


def render_value_changes(diff: ValueDiffResult, *, max_changes: int = 8) -> str:
    if diff.identical:
        return "no changes detected"

    summary = diff.summary()
    lines: list[str] = [
        f"changed={summary['changed']} "
        f"missing_reference={summary['missing_reference']} "
        f"missing_candidate={summary['missing_candidate']}",
        "changes:",
    ]
    for change in diff.changes[:max_changes]:
        reference = _render_side(change.reference, missing=change.kind == "missing_reference")
        candidate = _render_side(change.candidate, missing=change.kind == "missing_candidate")
        lines.append(f"  {change.path}: {reference} -> {candidate}")
    if diff.truncated or len(diff.changes) > max_changes:
        lines.append("  ... additional changes omitted")
    return "\n".join(lines)


def _render_side(value: Any, *, missing: bool) -> str:
    if missing:
        return MISSING_MARKER
    return json.dumps(value, ensure_ascii=False, sort_keys=True)
