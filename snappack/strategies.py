"""Reference snapshotting strategies for text, bytes and JSON values."""

from __future__ import annotations

import json as _json
import pprint
from typing import Any

from snappack.core.asynchronous import Async
from snappack.core.canonical import EMPTY_FIELDS, canonical_json, canonicalize
from snappack.core.diffing import Attachment, DiffOutcome, Diffing
from snappack.core.snapshotting import Snapshotting
from snappack.diff import diff_values, render_line_diff, render_value_changes


def _diff_lines(reference: str, candidate: str) -> DiffOutcome | None:
    if reference == candidate:
        return None
    rendered = render_line_diff(reference, candidate) or "Texts differ only in line endings"
    return (
        rendered,
        [Attachment(kind="text/x-diff", payload=rendered.encode("utf-8"), name="difference.patch")],
    )


def _diff_data(reference: bytes, candidate: bytes) -> DiffOutcome | None:
    if reference == candidate:
        return None
    if len(reference) != len(candidate):
        return (
            f"Expected data to match (reference {len(reference)} bytes, "
            f"candidate {len(candidate)} bytes)",
            [],
        )
    offset = next(idx for idx, (left, right) in enumerate(zip(reference, candidate)) if left != right)
    return (f"Expected data to match (first difference at byte offset {offset})", [])


LINES_DIFFING: Diffing[str] = Diffing(
    to_data=lambda text: text.encode("utf-8"),
    from_data=lambda data: data.decode("utf-8"),
    diff=_diff_lines,
)

DATA_DIFFING: Diffing[bytes] = Diffing(
    to_data=bytes,
    from_data=bytes,
    diff=_diff_data,
)


def lines() -> Snapshotting[str, str]:
    """Snapshot text as-is, stored with a ``txt`` extension."""
    return Snapshotting(snapshot=Async.value, diffing=LINES_DIFFING, path_extension="txt")


def data() -> Snapshotting[bytes, bytes]:
    return Snapshotting(snapshot=Async.value, diffing=DATA_DIFFING, path_extension=None)


def dump() -> Snapshotting[Any, str]:
    """Snapshot any value through its ``pprint`` representation."""
    return lines().pullback(lambda value: pprint.pformat(value, width=100, sort_dicts=True) + "\n")


def json_diffing(*, max_changes: int = 32) -> Diffing[Any]:
    def _diff_json(reference: Any, candidate: Any) -> DiffOutcome | None:
        result = diff_values(reference, candidate, max_changes=max_changes)
        if result.identical:
            return None
        text = render_value_changes(result, max_changes=max_changes)
        return (
            text,
            [
                Attachment(
                    kind="application/json",
                    payload=_json.dumps(result.to_dict(), ensure_ascii=False, sort_keys=True).encode(
                        "utf-8"
                    ),
                    name="changes.json",
                )
            ],
        )

    return Diffing(
        to_data=lambda value: (canonical_json(value, indent=2) + "\n").encode("utf-8"),
        from_data=lambda raw: _json.loads(raw.decode("utf-8")),
        diff=_diff_json,
    )


def json(
    *,
    ignore_fields: frozenset[str] = EMPTY_FIELDS,
    unordered_fields: frozenset[str] = EMPTY_FIELDS,
    max_changes: int = 32,
) -> Snapshotting[Any, Any]:
    """Snapshot JSON-compatible values in canonical form.

    Values are canonicalized before comparison so key order, tuple-vs-list and
    float formatting never cause spurious differences.
    """
    return Snapshotting.from_transform(
        lambda value: canonicalize(
            value,
            ignore_fields=frozenset(ignore_fields),
            unordered_fields=frozenset(unordered_fields),
        ),
        json_diffing(max_changes=max_changes),
        path_extension="json",
    )


_BY_NAME = {
    "lines": lines,
    "data": data,
    "json": json,
    "dump": dump,
}


def strategy_by_name(name: str) -> Snapshotting[Any, Any]:
    try:
        factory = _BY_NAME[name]
    except KeyError:
        raise ValueError(
            f"Unknown strategy: {name}. Supported values: {', '.join(sorted(_BY_NAME))}."
        ) from None
    return factory()
