"""Reference snapshot plugins: hook tracing and attachment export."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path

from snappack.plugins.base import (
    AssertionEndEvent,
    AssertionStartEvent,
    AttachmentsEvent,
    SnapshotPlugin,
)


@dataclass(slots=True)
class AssertionTracePlugin(SnapshotPlugin):
    """Writes every assertion hook to NDJSON."""

    output_path: str = "snapshot-trace.ndjson"
    name: str = "assertion-trace"

    def on_assertion_start(self, event: AssertionStartEvent) -> None:
        self._append("on_assertion_start", event.to_dict())

    def on_attachments(self, event: AttachmentsEvent) -> None:
        self._append("on_attachments", event.to_dict())

    def on_assertion_end(self, event: AssertionEndEvent) -> None:
        self._append("on_assertion_end", event.to_dict())

    def _append(self, hook: str, event: dict) -> None:
        path = Path(self.output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "hook": hook,
            "plugin": self.name,
            "event": event,
        }
        with path.open("a", encoding="utf-8") as handle:
            handle.write(
                json.dumps(
                    payload,
                    ensure_ascii=True,
                    sort_keys=True,
                    separators=(",", ":"),
                )
                + "\n"
            )


@dataclass(slots=True)
class AttachmentDirectoryPlugin(SnapshotPlugin):
    """Writes failure attachment payloads under ``<output_dir>/<test>.<identifier>/``."""

    output_dir: str = "snapshot-attachments"
    name: str = "attachment-directory"

    def on_attachments(self, event: AttachmentsEvent) -> None:
        target = Path(self.output_dir) / f"{event.test_name}.{event.identifier}"
        target.mkdir(parents=True, exist_ok=True)
        for position, attachment in enumerate(event.attachments, start=1):
            filename = Path(attachment.name).name if attachment.name else f"attachment-{position}"
            (target / filename).write_bytes(attachment.payload)
