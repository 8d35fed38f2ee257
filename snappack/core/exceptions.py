"""Snapshot engine exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from snappack.engine import SnapshotResult


class SnapshotError(Exception):
    """Base class for snapshot engine errors."""


class SnapshotConfigError(SnapshotError, ValueError):
    """Raised when assertion arguments or configuration are invalid."""


class ProductionError(SnapshotError):
    """Snapshot value could not be produced."""


class ProductionTimeoutError(ProductionError):
    """Snapshot production did not deliver a value before the timeout."""


class ProductionFailedError(ProductionError):
    """Snapshot production raised or delivered no value."""


class SnapshotAssertionError(AssertionError):
    """Raised by ``assert_snapshot`` when a snapshot assertion does not pass."""

    def __init__(self, result: "SnapshotResult") -> None:
        super().__init__(result.message)
        self.result = result
