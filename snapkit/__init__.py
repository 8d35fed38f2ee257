"""Stable public API surface for SnapKit.

This module is the supported import path for library users.
"""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

from snappack import strategies
from snappack.addressing import SnapshotIdentity, SnapshotLocations, sanitize_path_component
from snappack.config import (
    DEFAULT_TIMEOUT_SECONDS,
    default_diff_tool,
    is_global_record,
    set_global_record,
    use_global_record,
)
from snappack.core import (
    Async,
    Attachment,
    Diffing,
    ProductionFailedError,
    ProductionTimeoutError,
    SnapshotAssertionError,
    SnapshotConfigError,
    SnapshotError,
    Snapshotting,
)
from snappack.engine import SnapshotCase, SnapshotResult, render_diff_hint
from snappack.resources import DirectoryBundle, PackageBundle, ResourceBundle

__version__ = "0.1.0"

V = TypeVar("V")
F = TypeVar("F")


def verify_snapshot(
    value: V,
    as_: Snapshotting[V, F],
    *,
    file: str | Path,
    test_name: str,
    name: str | None = None,
    record: bool = False,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    diff_tool: str | None = None,
    snapshot_directory: str | Path | None = None,
    artifacts_root: str | Path | None = None,
) -> SnapshotResult:
    """Run one named snapshot assertion without a long-lived case.

    Args:
        value: Value to snapshot.
        as_: Snapshotting strategy.
        file: Test source file the reference belongs to.
        test_name: Test name used in the reference filename.
        name: Snapshot identifier. Defaults to ``"1"``: a fresh case numbers
            its first unnamed assertion 1.
        record: Force recording a new reference.
        timeout: Seconds to wait for the snapshot to be produced.
        diff_tool: Diff tool command line shown in mismatch messages.
        snapshot_directory: Override for ``<dir>/__Snapshots__/<file stem>``.
        artifacts_root: Override for the failure artifacts root.

    Returns:
        Structured assertion result.
    """
    case = SnapshotCase(
        diff_tool=diff_tool or default_diff_tool(),
        timeout=timeout,
        snapshot_directory=snapshot_directory,
        artifacts_root=artifacts_root,
    )
    return case.verify_snapshot(value, as_, name=name, record=record, file=file, test_name=test_name)


__all__ = [
    "__version__",
    "Async",
    "Attachment",
    "Diffing",
    "Snapshotting",
    "SnapshotCase",
    "SnapshotResult",
    "SnapshotIdentity",
    "SnapshotLocations",
    "ResourceBundle",
    "DirectoryBundle",
    "PackageBundle",
    "SnapshotError",
    "SnapshotConfigError",
    "SnapshotAssertionError",
    "ProductionTimeoutError",
    "ProductionFailedError",
    "strategies",
    "sanitize_path_component",
    "render_diff_hint",
    "is_global_record",
    "set_global_record",
    "use_global_record",
    "verify_snapshot",
]
