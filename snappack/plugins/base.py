"""Versioned plugin interfaces and assertion lifecycle event payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from snappack.core.diffing import Attachment

PLUGIN_API_VERSION = "1.0"
PLUGIN_CONFIG_VERSION = 1
PLUGIN_CONFIG_ENV_VAR = "SNAPSHOT_PLUGIN_CONFIG"


@dataclass(frozen=True, slots=True)
class AssertionStartEvent:
    file: str
    test_name: str
    identifier: str
    reference_path: str
    record: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "test_name": self.test_name,
            "identifier": self.identifier,
            "reference_path": self.reference_path,
            "record": self.record,
        }


@dataclass(frozen=True, slots=True)
class AssertionEndEvent:
    file: str
    test_name: str
    identifier: str
    status: str
    kind: str
    message: str
    line: int | None = None
    reference_path: str | None = None
    failure_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "test_name": self.test_name,
            "identifier": self.identifier,
            "status": self.status,
            "kind": self.kind,
            "message": self.message,
            "line": self.line,
            "reference_path": self.reference_path,
            "failure_path": self.failure_path,
        }


@dataclass(frozen=True, slots=True)
class AttachmentsEvent:
    """Failure attachments produced by a strategy's diff."""

    file: str
    test_name: str
    identifier: str
    failure_path: str
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)
    activity: str = "Attached Failure Diff"

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "test_name": self.test_name,
            "identifier": self.identifier,
            "failure_path": self.failure_path,
            "activity": self.activity,
            "attachments": [attachment.to_dict() for attachment in self.attachments],
        }


class SnapshotPlugin:
    """Base no-op snapshot plugin interface (API v1.x)."""

    api_version = PLUGIN_API_VERSION
    name = "snapshot-plugin"

    def on_assertion_start(self, event: AssertionStartEvent) -> None:
        return None

    def on_attachments(self, event: AttachmentsEvent) -> None:
        return None

    def on_assertion_end(self, event: AssertionEndEvent) -> None:
        return None
