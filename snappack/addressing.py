"""Deterministic reference and failure-artifact locations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Any

from snappack.config import SNAPSHOTS_DIRNAME, resolve_artifacts_root

_UNSAFE_RUN_RE = re.compile(r"\W+")


def sanitize_path_component(value: str) -> str:
    """Collapse runs of non-word characters into ``-`` and trim the ends.

    The result never contains a path separator. ``"test_foo()"`` becomes
    ``"test_foo"``; ``"a/b c"`` becomes ``"a-b-c"``.
    """
    sanitized = _UNSAFE_RUN_RE.sub("-", value).strip("-")
    return sanitized or "_"


def _with_extension(base: str, path_extension: str | None) -> str:
    return f"{base}.{path_extension}" if path_extension else base


@dataclass(frozen=True, slots=True)
class SnapshotIdentity:
    """Source file, test name and identifier addressing one reference."""

    file: Path
    test_name: str
    identifier: str

    @property
    def file_stem(self) -> str:
        return self.file.stem

    @property
    def base_name(self) -> str:
        return f"{self.test_name}.{self.identifier}"

    @property
    def resource_name(self) -> str:
        return f"{self.file_stem}.{self.test_name}.{self.identifier}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": str(self.file),
            "test_name": self.test_name,
            "identifier": self.identifier,
        }


def resolve_identity(
    file: str | Path,
    test_name: str,
    *,
    name: str | None = None,
    index: int | None = None,
) -> SnapshotIdentity:
    """Build an identity from an explicit ``name`` or a counter ``index``."""
    if name is None and index is None:
        raise ValueError("resolve_identity requires name or index")
    identifier = sanitize_path_component(name) if name is not None else str(index)
    return SnapshotIdentity(
        file=Path(file),
        test_name=sanitize_path_component(test_name),
        identifier=identifier,
    )


@dataclass(frozen=True, slots=True)
class SnapshotLocations:
    """Resolved filesystem locations for one snapshot assertion."""

    snapshot_directory: Path
    reference_path: Path
    artifacts_directory: Path
    failure_path: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "snapshot_directory": str(self.snapshot_directory),
            "reference_path": str(self.reference_path),
            "artifacts_directory": str(self.artifacts_directory),
            "failure_path": str(self.failure_path),
        }


def snapshot_directory_for(file: str | Path, *, snapshot_directory: str | Path | None = None) -> Path:
    """``<dir of file>/__Snapshots__/<file stem>`` unless overridden."""
    if snapshot_directory is not None:
        return Path(snapshot_directory)
    source = Path(file)
    return source.parent / SNAPSHOTS_DIRNAME / source.stem


def artifacts_directory_for(file: str | Path, *, artifacts_root: str | Path | None = None) -> Path:
    root = Path(artifacts_root) if artifacts_root is not None else resolve_artifacts_root()
    return root / Path(file).stem


def resolve_locations(
    identity: SnapshotIdentity,
    path_extension: str | None,
    *,
    snapshot_directory: str | Path | None = None,
    artifacts_root: str | Path | None = None,
) -> SnapshotLocations:
    directory = snapshot_directory_for(identity.file, snapshot_directory=snapshot_directory)
    filename = _with_extension(identity.base_name, path_extension)
    artifacts_directory = artifacts_directory_for(identity.file, artifacts_root=artifacts_root)
    return SnapshotLocations(
        snapshot_directory=directory,
        reference_path=directory / filename,
        artifacts_directory=artifacts_directory,
        failure_path=artifacts_directory / filename,
    )


def writable_resource_path(identity: SnapshotIdentity, path_extension: str | None) -> Path:
    """Recording location for the resource-bundle variant: ``<dir>/__Snapshots__/<resource>``."""
    return (
        identity.file.parent
        / SNAPSHOTS_DIRNAME
        / _with_extension(identity.resource_name, path_extension)
    )


def full_resource_name(identity: SnapshotIdentity, path_extension: str | None) -> str:
    return _with_extension(identity.resource_name, path_extension)
