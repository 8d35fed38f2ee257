"""Data models for structured value diffs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ChangeKind = Literal["changed", "missing_reference", "missing_candidate"]
MISSING_MARKER = "<MISSING>"


@dataclass(slots=True)
class ValueChange:
    """A single value delta at a JSON pointer path."""

    path: str
    reference: Any
    candidate: Any
    kind: ChangeKind = "changed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "reference": self.reference,
            "candidate": self.candidate,
        }


@dataclass(slots=True)
class ValueDiffResult:
    """Structured diff of two JSON-compatible values."""

    changes: list[ValueChange] = field(default_factory=list)
    truncated: bool = False

    @property
    def identical(self) -> bool:
        return not self.changes

    def summary(self) -> dict[str, int]:
        counts = {
            "changed": 0,
            "missing_reference": 0,
            "missing_candidate": 0,
        }
        for change in self.changes:
            counts[change.kind] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "identical": self.identical,
            "summary": self.summary(),
            "truncated": self.truncated,
            "changes": [change.to_dict() for change in self.changes],
        }
