"""Diffing contract: persist, restore and compare diffable values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Attachment:
    """Opaque failure payload forwarded to the host sink without interpretation."""

    kind: str
    payload: bytes
    name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "size": len(self.payload),
            "metadata": dict(self.metadata),
        }


DiffOutcome = tuple[str, list[Attachment]]


@dataclass(frozen=True, slots=True)
class Diffing(Generic[F]):
    """Serialization and comparison for one diffable type.

    ``diff(reference, candidate)`` returns ``None`` when the two values are
    equivalent, otherwise a display message and zero or more attachments.
    ``from_data(to_data(x))`` must compare equivalent to ``x``.
    """

    to_data: Callable[[F], bytes]
    from_data: Callable[[bytes], F]
    diff: Callable[[F, F], DiffOutcome | None]

    def round_trips(self, value: F) -> bool:
        return self.diff(self.from_data(self.to_data(value)), value) is None
