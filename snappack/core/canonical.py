"""Deterministic canonicalization for JSON snapshots."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
import json
import math
from typing import Any

EMPTY_FIELDS: frozenset[str] = frozenset()


def canonicalize(
    value: Any,
    *,
    ignore_fields: frozenset[str] = EMPTY_FIELDS,
    unordered_fields: frozenset[str] = EMPTY_FIELDS,
) -> Any:
    """Normalize values to a deterministic JSON-compatible representation.

    Keys named in ``ignore_fields`` are dropped at any depth. Lists stored under
    a key named in ``unordered_fields`` are sorted by their canonical form.
    """
    return _canonicalize(
        value,
        key=None,
        ignore_fields=ignore_fields,
        unordered_fields=unordered_fields,
    )


def canonical_json(
    value: Any,
    *,
    indent: int | None = None,
    ignore_fields: frozenset[str] = EMPTY_FIELDS,
    unordered_fields: frozenset[str] = EMPTY_FIELDS,
) -> str:
    """Serialize a value to stable canonical JSON."""
    canonical_value = canonicalize(
        value,
        ignore_fields=ignore_fields,
        unordered_fields=unordered_fields,
    )
    return json.dumps(
        canonical_value,
        ensure_ascii=False,
        indent=indent,
        separators=(",", ":") if indent is None else (",", ": "),
        sort_keys=True,
    )


def _canonicalize(
    value: Any,
    *,
    key: str | None,
    ignore_fields: frozenset[str],
    unordered_fields: frozenset[str],
) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)

    if isinstance(value, dict):
        normalized: dict[str, Any] = {}
        for raw_key in sorted(value.keys(), key=lambda raw: str(raw)):
            key_name = str(raw_key)
            if key_name in ignore_fields:
                continue
            normalized[key_name] = _canonicalize(
                value[raw_key],
                key=key_name,
                ignore_fields=ignore_fields,
                unordered_fields=unordered_fields,
            )
        return normalized

    if isinstance(value, (list, tuple, set, frozenset)):
        normalized_list = [
            _canonicalize(
                item,
                key=None,
                ignore_fields=ignore_fields,
                unordered_fields=unordered_fields,
            )
            for item in value
        ]
        if isinstance(value, (set, frozenset)) or (key is not None and key in unordered_fields):
            normalized_list.sort(key=_stable_item_sort_key)
        return normalized_list

    if isinstance(value, str):
        return value.replace("\r\n", "\n").replace("\r", "\n")

    if isinstance(value, bool) or value is None:
        return value

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError("NaN and infinity are not supported in canonical JSON")
        return float(f"{value:.12g}")

    raise TypeError(f"Value of type {type(value).__name__} is not JSON serializable")


def _stable_item_sort_key(item: Any) -> str:
    return json.dumps(item, ensure_ascii=True, separators=(",", ":"), sort_keys=True)
