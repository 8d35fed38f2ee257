from pathlib import Path
import threading
import time

import pytest

from snappack.config import RECORD_ENV_VAR, use_global_record
from snappack.core import (
    Async,
    Attachment,
    Diffing,
    SnapshotAssertionError,
    SnapshotConfigError,
    Snapshotting,
)
from snappack.engine import SnapshotCase, render_diff_hint
from snappack.plugins import PluginManager, SnapshotPlugin


def _text_diff(reference: str, candidate: str):
    if reference == candidate:
        return None
    return (f"  expected {reference!r}, got {candidate!r}\n", [])


TEXT = Snapshotting(
    snapshot=Async.value,
    diffing=Diffing(
        to_data=lambda text: text.encode("utf-8"),
        from_data=lambda data: data.decode("utf-8"),
        diff=_text_diff,
    ),
)

NEVER = Snapshotting(snapshot=lambda value: Async(run=lambda callback: None), diffing=TEXT.diffing)


def _case(tmp_path: Path, **kwargs) -> SnapshotCase:
    kwargs.setdefault("file", tmp_path / "FooTests.py")
    kwargs.setdefault("test_name", "testFoo")
    kwargs.setdefault("artifacts_root", tmp_path / "artifacts")
    kwargs.setdefault("diff_tool", None)
    return SnapshotCase(**kwargs)


def _reference(tmp_path: Path, filename: str = "testFoo.1") -> Path:
    return tmp_path / "__Snapshots__" / "FooTests" / filename


def _tree(root: Path) -> dict[str, bytes]:
    if not root.exists():
        return {}
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_record_pass_then_mismatch_scenario(tmp_path: Path) -> None:
    first = _case(tmp_path).verify_snapshot("hello", TEXT)
    assert first.status == "recorded"
    assert first.kind == "recorded"
    assert first.passed is False
    assert first.created is True
    assert first.message.startswith("Recorded snapshot")
    assert str(_reference(tmp_path)) in first.message
    assert _reference(tmp_path).read_bytes() == b"hello"

    second = _case(tmp_path).verify_snapshot("hello", TEXT)
    assert second.status == "pass"
    assert second.kind == "match"

    third = _case(tmp_path).verify_snapshot("world", TEXT)
    assert third.status == "fail"
    assert third.kind == "mismatch"
    failure_path = tmp_path / "artifacts" / "FooTests" / "testFoo.1"
    assert third.failure_path == str(failure_path)
    assert failure_path.read_bytes() == b"world"
    assert _reference(tmp_path).read_bytes() == b"hello"
    assert third.message.startswith("expected 'hello', got 'world'\n\n@")


def test_first_run_recording_round_trips(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("snapshot body", TEXT)

    stored = TEXT.diffing.from_data(_reference(tmp_path).read_bytes())
    assert TEXT.diffing.diff(stored, "snapshot body") is None


def test_stable_pass_performs_no_writes(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("stable", TEXT)
    before = (_tree(tmp_path / "__Snapshots__"), _tree(tmp_path / "artifacts"))
    reference_mtime = _reference(tmp_path).stat().st_mtime_ns

    result = _case(tmp_path).verify_snapshot("stable", TEXT)

    assert result.passed is True
    assert (_tree(tmp_path / "__Snapshots__"), _tree(tmp_path / "artifacts")) == before
    assert _reference(tmp_path).stat().st_mtime_ns == reference_mtime
    assert not (tmp_path / "artifacts").exists()


def test_unnamed_assertions_are_numbered_deterministically(tmp_path: Path) -> None:
    def run_once() -> list[str]:
        case = _case(tmp_path)
        return [
            case.verify_snapshot("a", TEXT).snapshot_name,
            case.verify_snapshot("b", TEXT, name="explicit").snapshot_name,
            case.verify_snapshot("c", TEXT).snapshot_name,
        ]

    first_run = run_once()
    second_run = run_once()

    assert first_run == ["testFoo.1", "testFoo.explicit", "testFoo.2"]
    assert second_run == first_run


def test_explicit_name_ignores_counter_state(tmp_path: Path) -> None:
    case = _case(tmp_path)
    case.verify_snapshot("one", TEXT)
    case.verify_snapshot("two", TEXT)

    named = case.verify_snapshot("x", TEXT, name="login form")

    assert named.snapshot_name == "testFoo.login-form"
    assert case.counter == 3


def test_extension_is_appended(tmp_path: Path) -> None:
    strategy = Snapshotting(snapshot=Async.value, diffing=TEXT.diffing, path_extension="txt")

    _case(tmp_path).verify_snapshot("hello", strategy)

    assert _reference(tmp_path, "testFoo.1.txt").read_text(encoding="utf-8") == "hello"


def test_timeout_fails_without_writing_artifacts(tmp_path: Path) -> None:
    result = _case(tmp_path).verify_snapshot("hello", NEVER, timeout=0.05)

    assert result.status == "fail"
    assert result.kind == "production_timeout"
    assert "not produced within" in result.message
    assert not _reference(tmp_path).exists()
    assert not (tmp_path / "artifacts").exists()


def test_timeout_keeps_existing_reference_untouched(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("hello", TEXT)

    def run(callback) -> None:
        def _late() -> None:
            time.sleep(0.2)
            callback("late value")

        threading.Thread(target=_late, daemon=True).start()

    late = Snapshotting(snapshot=lambda value: Async(run=run), diffing=TEXT.diffing)
    result = _case(tmp_path, record=True).verify_snapshot("hello", late, timeout=0.05)
    time.sleep(0.3)

    assert result.kind == "production_timeout"
    assert _reference(tmp_path).read_bytes() == b"hello"
    assert not (tmp_path / "artifacts").exists()


def test_production_failure_is_reported(tmp_path: Path) -> None:
    def explode(value: str) -> Async[str]:
        raise RuntimeError("cannot render")

    broken = Snapshotting(snapshot=explode, diffing=TEXT.diffing)
    result = _case(tmp_path).verify_snapshot("hello", broken)

    assert result.kind == "production_failed"
    assert "cannot render" in result.message
    assert not _reference(tmp_path).exists()


def test_none_production_is_reported(tmp_path: Path) -> None:
    empty = Snapshotting(snapshot=lambda value: Async(run=lambda cb: cb(None)), diffing=TEXT.diffing)
    result = _case(tmp_path).verify_snapshot("hello", empty)
    assert result.kind == "production_failed"
    assert result.message == "Couldn't snapshot value"


def test_local_record_overwrites_existing_reference(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("old", TEXT)

    result = _case(tmp_path).verify_snapshot("new", TEXT, record=True)

    assert result.status == "recorded"
    assert result.created is False
    assert _reference(tmp_path).read_bytes() == b"new"


def test_case_record_flag(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("old", TEXT)
    result = _case(tmp_path, record=True).verify_snapshot("old", TEXT)
    assert result.status == "recorded"


def test_global_record_flag(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("old", TEXT)

    with use_global_record():
        result = _case(tmp_path).verify_snapshot("new", TEXT)

    assert result.status == "recorded"
    assert _reference(tmp_path).read_bytes() == b"new"
    assert _case(tmp_path).verify_snapshot("new", TEXT).passed is True


def test_global_record_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _case(tmp_path).verify_snapshot("old", TEXT)
    monkeypatch.setenv(RECORD_ENV_VAR, "true")

    result = _case(tmp_path).verify_snapshot("new", TEXT)

    assert result.status == "recorded"


def test_io_failure_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    case = _case(tmp_path, snapshot_directory=blocker / "snapshots")

    result = case.verify_snapshot("hello", TEXT)

    assert result.status == "error"
    assert result.kind == "io_error"
    assert result.message


def test_failure_artifact_io_error_is_reported(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("hello", TEXT)
    blocker = tmp_path / "artifacts-file"
    blocker.write_text("x", encoding="utf-8")

    result = _case(tmp_path, artifacts_root=blocker).verify_snapshot("world", TEXT)

    assert result.kind == "io_error"


def test_later_assertions_still_run_after_failure(tmp_path: Path) -> None:
    case = _case(tmp_path)
    failed = case.verify_snapshot("x", NEVER, timeout=0.05)
    recorded = case.verify_snapshot("y", TEXT)

    assert failed.kind == "production_timeout"
    assert recorded.snapshot_name == "testFoo.2"
    assert recorded.status == "recorded"


def test_diff_tool_message(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("hello", TEXT)

    result = _case(tmp_path, diff_tool="ksdiff").verify_snapshot("world", TEXT)

    reference = _reference(tmp_path)
    failure = tmp_path / "artifacts" / "FooTests" / "testFoo.1"
    assert result.message.endswith(f'ksdiff "{reference}" "{failure}"')


def test_render_diff_hint_variants(tmp_path: Path) -> None:
    reference = tmp_path / "ref"
    failure = tmp_path / "fail"

    assert render_diff_hint(reference, failure, None) == f'@−\n"{reference}"\n@+\n"{failure}"'
    assert render_diff_hint(reference, failure, "code --diff {reference} {failure} --wait") == (
        f'code --diff "{reference}" "{failure}" --wait'
    )


def test_assert_snapshot_raises_with_result(tmp_path: Path) -> None:
    with pytest.raises(SnapshotAssertionError, match="Recorded snapshot") as excinfo:
        _case(tmp_path).assert_snapshot("hello", TEXT)

    assert excinfo.value.result.kind == "recorded"
    assert isinstance(excinfo.value, AssertionError)
    assert _case(tmp_path).assert_snapshot("hello", TEXT).passed is True


def test_collect_mode_accumulates_failures(tmp_path: Path) -> None:
    _case(tmp_path).verify_snapshot("hello", TEXT, name="greeting")
    case = _case(tmp_path, failure_mode="collect")

    case.assert_snapshot("world", TEXT, name="greeting")
    case.assert_snapshot("new", TEXT, name="farewell")
    case.assert_snapshot("hello", TEXT, name="greeting")

    assert [failure.kind for failure in case.failures] == ["mismatch", "recorded"]


def test_non_positive_timeout_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SnapshotConfigError):
        _case(tmp_path).verify_snapshot("hello", TEXT, timeout=0)


def test_location_defaults_to_calling_test(tmp_path: Path) -> None:
    case = SnapshotCase(
        snapshot_directory=tmp_path / "snapshots",
        artifacts_root=tmp_path / "artifacts",
    )

    result = case.verify_snapshot("hello", TEXT)

    assert result.identity.test_name == "test_location_defaults_to_calling_test"
    assert result.identity.file == Path(__file__).absolute()
    assert isinstance(result.line, int)
    assert (tmp_path / "snapshots" / "test_location_defaults_to_calling_test.1").exists()


class _CollectingPlugin(SnapshotPlugin):
    name = "collector"

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def on_assertion_start(self, event) -> None:
        self.events.append(("start", event))

    def on_attachments(self, event) -> None:
        self.events.append(("attachments", event))

    def on_assertion_end(self, event) -> None:
        self.events.append(("end", event))


def _with_attachment(reference: str, candidate: str):
    if reference == candidate:
        return None
    return ("changed", [Attachment(kind="text/plain", payload=candidate.encode(), name="new.txt")])


ATTACHING = Snapshotting(
    snapshot=Async.value,
    diffing=Diffing(
        to_data=TEXT.diffing.to_data,
        from_data=TEXT.diffing.from_data,
        diff=_with_attachment,
    ),
)


def test_attachments_are_forwarded_to_plugins(tmp_path: Path) -> None:
    collector = _CollectingPlugin()
    manager = PluginManager(plugins=(collector,))
    _case(tmp_path, plugin_manager=manager).verify_snapshot("hello", ATTACHING)
    collector.events.clear()

    result = _case(tmp_path, plugin_manager=manager).verify_snapshot("world", ATTACHING)

    hooks = [hook for hook, _ in collector.events]
    assert hooks == ["start", "attachments", "end"]
    attachments_event = collector.events[1][1]
    assert attachments_event.attachments[0].payload == b"world"
    assert attachments_event.failure_path == result.failure_path
    end_event = collector.events[2][1]
    assert end_event.kind == "mismatch"


def test_failing_attachment_sink_does_not_change_outcome(tmp_path: Path) -> None:
    class BrokenSink(SnapshotPlugin):
        name = "broken-sink"

        def on_attachments(self, event) -> None:
            raise RuntimeError("display unavailable")

    manager = PluginManager(plugins=(BrokenSink(),))
    _case(tmp_path, plugin_manager=manager).verify_snapshot("hello", ATTACHING)

    with pytest.warns(RuntimeWarning, match="SnapKit plugin failure"):
        result = _case(tmp_path, plugin_manager=manager).verify_snapshot("world", ATTACHING)

    assert result.kind == "mismatch"
    assert Path(result.failure_path).read_bytes() == b"world"
    assert manager.diagnostics[0].hook == "on_attachments"
