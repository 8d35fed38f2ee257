"""JSON-pointer value diff engine."""

from __future__ import annotations

from typing import Any

from snappack.diff.models import MISSING_MARKER, ValueChange, ValueDiffResult

_MISSING = object()


def diff_values(
    reference: Any,
    candidate: Any,
    *,
    max_changes: int = 32,
) -> ValueDiffResult:
    """Diff two JSON-compatible values, collecting at most ``max_changes`` changes.

    Dicts are compared by key, lists by position.
    """
    changes: list[ValueChange] = []
    truncated = _collect_value_changes(
        reference,
        candidate,
        path="",
        out=changes,
        max_changes=max(1, max_changes),
    )
    return ValueDiffResult(changes=changes, truncated=truncated)


def _collect_value_changes(
    reference: Any,
    candidate: Any,
    *,
    path: str,
    out: list[ValueChange],
    max_changes: int,
) -> bool:
    if len(out) >= max_changes:
        return True

    if reference is _MISSING or candidate is _MISSING:
        out.append(
            ValueChange(
                path=path or "/",
                reference=MISSING_MARKER if reference is _MISSING else reference,
                candidate=MISSING_MARKER if candidate is _MISSING else candidate,
                kind="missing_reference" if reference is _MISSING else "missing_candidate",
            )
        )
        return len(out) >= max_changes

    if type(reference) is not type(candidate):
        out.append(ValueChange(path=path or "/", reference=reference, candidate=candidate))
        return len(out) >= max_changes

    if isinstance(reference, dict):
        truncated = False
        keys = sorted(set(reference.keys()) | set(candidate.keys()), key=str)
        for key in keys:
            child_path = f"{path}/{_escape_json_pointer(str(key))}"
            truncated |= _collect_value_changes(
                reference.get(key, _MISSING),
                candidate.get(key, _MISSING),
                path=child_path,
                out=out,
                max_changes=max_changes,
            )
            if len(out) >= max_changes:
                return True
        return truncated

    if isinstance(reference, list):
        truncated = False
        max_len = max(len(reference), len(candidate))
        for idx in range(max_len):
            truncated |= _collect_value_changes(
                reference[idx] if idx < len(reference) else _MISSING,
                candidate[idx] if idx < len(candidate) else _MISSING,
                path=f"{path}/{idx}",
                out=out,
                max_changes=max_changes,
            )
            if len(out) >= max_changes:
                return True
        return truncated

    if reference != candidate:
        out.append(ValueChange(path=path or "/", reference=reference, candidate=candidate))
        return len(out) >= max_changes

    return False


def _escape_json_pointer(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")
