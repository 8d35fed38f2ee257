"""Record-or-compare snapshot assertion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
import inspect
from pathlib import Path
from typing import Any, Literal, TypeVar

from snappack.addressing import (
    SnapshotIdentity,
    artifacts_directory_for,
    full_resource_name,
    resolve_identity,
    resolve_locations,
    writable_resource_path,
)
from snappack.config import (
    DEFAULT_TIMEOUT_SECONDS,
    default_diff_tool,
    get_logger,
    is_global_record,
)
from snappack.core.asynchronous import await_value
from snappack.core.diffing import Attachment
from snappack.core.exceptions import (
    ProductionError,
    ProductionFailedError,
    ProductionTimeoutError,
    SnapshotAssertionError,
    SnapshotConfigError,
)
from snappack.core.snapshotting import Snapshotting
from snappack.diff.formatting import MINUS, PLUS
from snappack.plugins import (
    AssertionEndEvent,
    AssertionStartEvent,
    AttachmentsEvent,
    PluginManager,
    get_active_plugin_manager,
)
from snappack.resources import ResourceBundle

V = TypeVar("V")
F = TypeVar("F")

SnapshotStatus = Literal["pass", "recorded", "fail", "error"]
ResultKind = Literal[
    "match",
    "recorded",
    "production_timeout",
    "production_failed",
    "reference_missing",
    "mismatch",
    "io_error",
]
FailureMode = Literal["raise", "collect"]

logger = get_logger(__name__)

_INTERNAL_MODULES = frozenset({__name__, "snapkit"})


@dataclass(slots=True)
class SnapshotResult:
    """Outcome of a single snapshot assertion."""

    status: SnapshotStatus
    kind: ResultKind
    message: str
    identity: SnapshotIdentity
    reference_path: str | None = None
    failure_path: str | None = None
    line: int | None = None
    created: bool | None = None
    attachments: list[Attachment] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == "pass"

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    @property
    def snapshot_name(self) -> str:
        return self.identity.base_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "kind": self.kind,
            "exit_code": self.exit_code,
            "message": self.message,
            "snapshot_name": self.snapshot_name,
            "identity": self.identity.to_dict(),
            "reference_path": self.reference_path,
            "failure_path": self.failure_path,
            "line": self.line,
            "created": self.created,
            "attachments": [attachment.to_dict() for attachment in self.attachments],
        }


@dataclass(frozen=True, slots=True)
class _SourceLocation:
    file: Path
    test_name: str
    line: int | None


def render_diff_hint(reference_path: Path, failure_path: Path, diff_tool: str | None) -> str:
    """Build the diff-tool command line or a plain before/after path listing.

    ``diff_tool`` may contain ``{reference}`` and ``{failure}`` placeholders;
    otherwise both quoted paths are appended to it.
    """
    reference = f'"{reference_path}"'
    failure = f'"{failure_path}"'
    if diff_tool:
        if "{reference}" in diff_tool or "{failure}" in diff_tool:
            return diff_tool.replace("{reference}", reference).replace("{failure}", failure)
        return f"{diff_tool} {reference} {failure}"
    return f"@{MINUS}\n{reference}\n@{PLUS}\n{failure}"


@dataclass(slots=True)
class SnapshotCase:
    """Snapshot assertions for one running test case.

    Unnamed assertions are numbered by a per-instance counter starting at 1, so
    identifiers repeat across runs only when assertions execute in the same
    order. A case must not be shared by concurrently running assertions.

    Recording is requested by the ``record`` argument of a call, by
    ``self.record`` or by the process-wide record flag. In ``"collect"``
    failure mode ``assert_*`` methods append failures to ``self.failures``
    instead of raising ``SnapshotAssertionError``.
    """

    record: bool = False
    diff_tool: str | None = field(default_factory=default_diff_tool)
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    file: str | Path | None = None
    test_name: str | None = None
    snapshot_directory: str | Path | None = None
    artifacts_root: str | Path | None = None
    failure_mode: FailureMode = "raise"
    plugin_manager: PluginManager | None = None
    failures: list[SnapshotResult] = field(default_factory=list)
    _counter: int = field(default=1, init=False, repr=False)

    @property
    def counter(self) -> int:
        return self._counter

    def verify_snapshot(
        self,
        value: V,
        as_: Snapshotting[V, F],
        *,
        name: str | None = None,
        record: bool = False,
        timeout: float | None = None,
        file: str | Path | None = None,
        test_name: str | None = None,
        line: int | None = None,
    ) -> SnapshotResult:
        """Compare ``value`` against its reference, recording when requested or absent."""
        wait = self._resolve_timeout(timeout)
        recording = record or self.record or is_global_record()
        source = self._resolve_source(file=file, test_name=test_name, line=line)
        identity = self._next_identity(source, name)
        locations = resolve_locations(
            identity,
            as_.path_extension,
            snapshot_directory=self.snapshot_directory,
            artifacts_root=self.artifacts_root,
        )
        manager = self._plugins()
        manager.on_assertion_start(
            AssertionStartEvent(
                file=str(identity.file),
                test_name=identity.test_name,
                identifier=identity.identifier,
                reference_path=str(locations.reference_path),
                record=recording,
            )
        )
        logger.debug(
            "snapshot %s reference=%s failure=%s",
            identity.base_name,
            locations.reference_path,
            locations.failure_path,
        )

        try:
            produced = _produce(value, as_, wait=wait)
            locations.snapshot_directory.mkdir(parents=True, exist_ok=True)
            if recording or not locations.reference_path.exists():
                existed = locations.reference_path.exists()
                locations.reference_path.write_bytes(as_.diffing.to_data(produced))
                logger.info("recorded snapshot %s", locations.reference_path)
                result = SnapshotResult(
                    status="recorded",
                    kind="recorded",
                    message=f'Recorded snapshot: …\n\n"{locations.reference_path}"',
                    identity=identity,
                    reference_path=str(locations.reference_path),
                    line=source.line,
                    created=not existed,
                )
            else:
                result = self._compare(
                    produced,
                    as_,
                    identity=identity,
                    reference_path=locations.reference_path,
                    failure_path=locations.failure_path,
                    line=source.line,
                    manager=manager,
                )
        except ProductionError as error:
            result = self._production_failure(error, identity=identity, line=source.line)
        except OSError as error:
            result = self._io_failure(error, identity=identity, line=source.line)
            result.reference_path = str(locations.reference_path)

        self._finish(result, manager)
        return result

    def assert_snapshot(
        self,
        value: V,
        as_: Snapshotting[V, F],
        *,
        name: str | None = None,
        record: bool = False,
        timeout: float | None = None,
        file: str | Path | None = None,
        test_name: str | None = None,
        line: int | None = None,
    ) -> SnapshotResult:
        result = self.verify_snapshot(
            value,
            as_,
            name=name,
            record=record,
            timeout=timeout,
            file=file,
            test_name=test_name,
            line=line,
        )
        return self._report(result)

    def verify_snapshot_from_resources(
        self,
        value: V,
        as_: Snapshotting[V, F],
        *,
        bundle: ResourceBundle,
        name: str | None = None,
        record: bool = False,
        timeout: float | None = None,
        file: str | Path | None = None,
        test_name: str | None = None,
        line: int | None = None,
    ) -> SnapshotResult:
        """Compare ``value`` against a reference stored in a read-only bundle.

        Recording happens only when ``record=True`` is passed; it writes to the
        conventional ``__Snapshots__`` directory next to the test file. A
        missing resource is reported as a failure, never recorded implicitly.
        """
        wait = self._resolve_timeout(timeout)
        source = self._resolve_source(file=file, test_name=test_name, line=line)
        identity = self._next_identity(source, name)
        extension = as_.path_extension
        resource = full_resource_name(identity, extension)
        writable_path = writable_resource_path(identity, extension)
        manager = self._plugins()
        manager.on_assertion_start(
            AssertionStartEvent(
                file=str(identity.file),
                test_name=identity.test_name,
                identifier=identity.identifier,
                reference_path=resource,
                record=record,
            )
        )

        try:
            produced = _produce(value, as_, wait=wait)
            if record:
                existed = writable_path.exists()
                writable_path.parent.mkdir(parents=True, exist_ok=True)
                writable_path.write_bytes(as_.diffing.to_data(produced))
                logger.info("recorded resource %s", writable_path)
                result = SnapshotResult(
                    status="recorded",
                    kind="recorded",
                    message=(
                        f"Updated resource {resource}"
                        if existed
                        else f"New resource created {resource}"
                    ),
                    identity=identity,
                    reference_path=str(writable_path),
                    line=source.line,
                    created=not existed,
                )
            else:
                located = bundle.url_for(identity.resource_name, extension)
                if located is None:
                    result = SnapshotResult(
                        status="fail",
                        kind="reference_missing",
                        message=f"Could not find resource {resource}",
                        identity=identity,
                        line=source.line,
                    )
                else:
                    result = self._compare(
                        produced,
                        as_,
                        identity=identity,
                        reference_path=Path(located),
                        failure_path=artifacts_directory_for(
                            identity.file, artifacts_root=self.artifacts_root
                        )
                        / Path(located).name,
                        line=source.line,
                        manager=manager,
                    )
        except ProductionError as error:
            result = self._production_failure(error, identity=identity, line=source.line)
        except OSError as error:
            result = self._io_failure(error, identity=identity, line=source.line)

        self._finish(result, manager)
        return result

    def assert_snapshot_from_resources(
        self,
        value: V,
        as_: Snapshotting[V, F],
        *,
        bundle: ResourceBundle,
        name: str | None = None,
        record: bool = False,
        timeout: float | None = None,
        file: str | Path | None = None,
        test_name: str | None = None,
        line: int | None = None,
    ) -> SnapshotResult:
        result = self.verify_snapshot_from_resources(
            value,
            as_,
            bundle=bundle,
            name=name,
            record=record,
            timeout=timeout,
            file=file,
            test_name=test_name,
            line=line,
        )
        return self._report(result)

    def _resolve_timeout(self, timeout: float | None) -> float:
        wait = self.timeout if timeout is None else timeout
        if wait <= 0:
            raise SnapshotConfigError(f"timeout must be positive, got {wait!r}")
        return float(wait)

    def _resolve_source(
        self,
        *,
        file: str | Path | None,
        test_name: str | None,
        line: int | None,
    ) -> _SourceLocation:
        resolved_file = file if file is not None else self.file
        resolved_test = test_name if test_name is not None else self.test_name
        if resolved_file is not None and resolved_test is not None and line is not None:
            return _SourceLocation(Path(resolved_file), resolved_test, line)

        caller = _caller_location()
        return _SourceLocation(
            file=Path(resolved_file) if resolved_file is not None else caller.file,
            test_name=resolved_test if resolved_test is not None else caller.test_name,
            line=line if line is not None else caller.line,
        )

    def _next_identity(self, source: _SourceLocation, name: str | None) -> SnapshotIdentity:
        if name is not None:
            return resolve_identity(source.file, source.test_name, name=name)
        index = self._counter
        self._counter += 1
        return resolve_identity(source.file, source.test_name, index=index)

    def _plugins(self) -> PluginManager:
        return self.plugin_manager if self.plugin_manager is not None else get_active_plugin_manager()

    def _production_failure(
        self,
        error: ProductionError,
        *,
        identity: SnapshotIdentity,
        line: int | None,
    ) -> SnapshotResult:
        timed_out = isinstance(error, ProductionTimeoutError)
        logger.warning("snapshot %s could not be produced: %s", identity.base_name, error)
        return SnapshotResult(
            status="fail",
            kind="production_timeout" if timed_out else "production_failed",
            message=str(error),
            identity=identity,
            line=line,
        )

    def _compare(
        self,
        candidate: F,
        strategy: Snapshotting[V, F],
        *,
        identity: SnapshotIdentity,
        reference_path: Path,
        failure_path: Path,
        line: int | None,
        manager: PluginManager,
    ) -> SnapshotResult:
        diffing = strategy.diffing
        reference = diffing.from_data(reference_path.read_bytes())
        outcome = diffing.diff(reference, candidate)
        if outcome is None:
            return SnapshotResult(
                status="pass",
                kind="match",
                message="snapshot matched",
                identity=identity,
                reference_path=str(reference_path),
                line=line,
            )

        failure_text, attachments = outcome
        failure_path.parent.mkdir(parents=True, exist_ok=True)
        failure_path.write_bytes(diffing.to_data(candidate))
        logger.info("snapshot mismatch %s; failure artifact %s", reference_path, failure_path)

        if attachments:
            manager.on_attachments(
                AttachmentsEvent(
                    file=str(identity.file),
                    test_name=identity.test_name,
                    identifier=identity.identifier,
                    failure_path=str(failure_path),
                    attachments=tuple(attachments),
                )
            )

        hint = render_diff_hint(reference_path, failure_path, self.diff_tool)
        return SnapshotResult(
            status="fail",
            kind="mismatch",
            message=f"{failure_text.strip()}\n\n{hint}",
            identity=identity,
            reference_path=str(reference_path),
            failure_path=str(failure_path),
            line=line,
            attachments=list(attachments),
        )

    def _io_failure(
        self,
        error: OSError,
        *,
        identity: SnapshotIdentity,
        line: int | None,
    ) -> SnapshotResult:
        logger.warning("snapshot %s I/O failure: %s", identity.base_name, error)
        return SnapshotResult(
            status="error",
            kind="io_error",
            message=str(error),
            identity=identity,
            line=line,
        )

    def _finish(self, result: SnapshotResult, manager: PluginManager) -> None:
        manager.on_assertion_end(
            AssertionEndEvent(
                file=str(result.identity.file),
                test_name=result.identity.test_name,
                identifier=result.identity.identifier,
                status=result.status,
                kind=result.kind,
                message=result.message,
                line=result.line,
                reference_path=result.reference_path,
                failure_path=result.failure_path,
            )
        )

    def _report(self, result: SnapshotResult) -> SnapshotResult:
        if result.passed:
            return result
        if self.failure_mode == "collect":
            self.failures.append(result)
            return result
        raise SnapshotAssertionError(result)


def _produce(value: V, strategy: Snapshotting[V, F], *, wait: float) -> F:
    try:
        deferred = strategy.snapshot(value)
    except Exception as error:
        raise ProductionFailedError(
            f"Couldn't snapshot value: {error.__class__.__name__}: {error}"
        ) from error
    return await_value(deferred, timeout=wait)


def _caller_location() -> _SourceLocation:
    frame = inspect.currentframe()
    try:
        while frame is not None and frame.f_globals.get("__name__") in _INTERNAL_MODULES:
            frame = frame.f_back
        if frame is None:
            raise SnapshotConfigError("Could not determine the calling test; pass file and test_name")
        return _SourceLocation(
            file=Path(frame.f_code.co_filename).absolute(),
            test_name=frame.f_code.co_name,
            line=frame.f_lineno,
        )
    finally:
        del frame
