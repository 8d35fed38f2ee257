"""Read-only reference bundles looked up by resource name and extension."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ResourceBundle(Protocol):
    """Named-resource lookup used by ``verify_snapshot_from_resources``."""

    def url_for(self, name: str, extension: str | None) -> Path | None:
        """Return the location of ``name[.extension]`` or ``None`` when absent."""


def _resource_filename(name: str, extension: str | None) -> str:
    return f"{name}.{extension}" if extension else name


@dataclass(frozen=True, slots=True)
class DirectoryBundle:
    """Resources stored flat in one directory."""

    root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))

    def url_for(self, name: str, extension: str | None) -> Path | None:
        candidate = self.root / _resource_filename(name, extension)
        return candidate if candidate.is_file() else None


@dataclass(frozen=True, slots=True)
class PackageBundle:
    """Resources shipped as package data inside an importable package.

    Only packages installed as regular directories are supported; resources
    inside zip archives have no stable filesystem path.
    """

    package: str
    subdirectory: str | None = None

    def url_for(self, name: str, extension: str | None) -> Path | None:
        traversable = importlib_resources.files(self.package)
        if self.subdirectory:
            traversable = traversable.joinpath(self.subdirectory)
        candidate = traversable.joinpath(_resource_filename(name, extension))
        if not candidate.is_file():
            return None
        return Path(str(candidate))
