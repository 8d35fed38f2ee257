"""Core contracts and deterministic primitives for SnapKit."""

from snappack.core.asynchronous import Async, Delivery, await_value
from snappack.core.canonical import canonical_json, canonicalize
from snappack.core.diffing import Attachment, DiffOutcome, Diffing
from snappack.core.exceptions import (
    ProductionError,
    ProductionFailedError,
    ProductionTimeoutError,
    SnapshotAssertionError,
    SnapshotConfigError,
    SnapshotError,
)
from snappack.core.snapshotting import Snapshotting

__all__ = [
    "Async",
    "Delivery",
    "await_value",
    "Attachment",
    "DiffOutcome",
    "Diffing",
    "Snapshotting",
    "canonicalize",
    "canonical_json",
    "SnapshotError",
    "SnapshotConfigError",
    "ProductionError",
    "ProductionTimeoutError",
    "ProductionFailedError",
    "SnapshotAssertionError",
]
