"""Snapshotting contract: turn an input value into a diffable value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from snappack.core.asynchronous import Async
from snappack.core.diffing import Diffing

V = TypeVar("V")
F = TypeVar("F")
W = TypeVar("W")


@dataclass(frozen=True, slots=True)
class Snapshotting(Generic[V, F]):
    """A strategy for snapshotting values of one type into a diffable format.

    ``path_extension`` is used verbatim (no leading dot) in artifact filenames;
    ``None`` means no extension.
    """

    snapshot: Callable[[V], Async[F]]
    diffing: Diffing[F]
    path_extension: str | None = None

    @classmethod
    def from_transform(
        cls,
        transform: Callable[[V], F],
        diffing: Diffing[F],
        path_extension: str | None = None,
    ) -> "Snapshotting[V, F]":
        """Build a strategy from a synchronous ``value -> format`` function."""
        return cls(
            snapshot=lambda value: Async.from_callable(lambda: transform(value)),
            diffing=diffing,
            path_extension=path_extension,
        )

    @classmethod
    def identity(cls, diffing: Diffing[F], path_extension: str | None = None) -> "Snapshotting[F, F]":
        return cls(snapshot=Async.value, diffing=diffing, path_extension=path_extension)

    def pullback(self, transform: Callable[[W], V]) -> "Snapshotting[W, F]":
        """Snapshot a new type by converting it into this strategy's input first."""
        return Snapshotting(
            snapshot=lambda value: Async.from_callable(lambda: transform(value)).flat_map(
                self.snapshot
            ),
            diffing=self.diffing,
            path_extension=self.path_extension,
        )

    def async_pullback(self, transform: Callable[[W], Async[V]]) -> "Snapshotting[W, F]":
        return Snapshotting(
            snapshot=lambda value: transform(value).flat_map(self.snapshot),
            diffing=self.diffing,
            path_extension=self.path_extension,
        )
