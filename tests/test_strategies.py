from dataclasses import dataclass
import json
from pathlib import Path

import pytest

from snappack import strategies
from snappack.core import Async, await_value, canonical_json, canonicalize
from snappack.diff import MINUS, diff_values, render_line_diff, render_value_changes
from snappack.engine import SnapshotCase


def _produce(strategy, value):
    return await_value(strategy.snapshot(value), timeout=1.0)


def test_lines_round_trip_and_extension() -> None:
    strategy = strategies.lines()

    assert strategy.path_extension == "txt"
    assert strategy.diffing.round_trips("héllo\nwörld\n")


def test_lines_diff_renders_unified_hunk_and_patch_attachment() -> None:
    outcome = strategies.LINES_DIFFING.diff("a\nb\nc\n", "a\nB\nc\n")

    assert outcome is not None
    message, attachments = outcome
    assert f"{MINUS}b" in message
    assert "+B" in message
    assert attachments[0].kind == "text/x-diff"
    assert attachments[0].name == "difference.patch"
    assert attachments[0].payload.decode("utf-8") == message


def test_lines_diff_reports_line_ending_only_changes() -> None:
    outcome = strategies.LINES_DIFFING.diff("a\nb", "a\r\nb")

    assert outcome is not None
    assert outcome[0] == "Texts differ only in line endings"


def test_data_diff_messages() -> None:
    assert strategies.DATA_DIFFING.diff(b"abc", b"abc") is None

    size_message, _ = strategies.DATA_DIFFING.diff(b"abc", b"abcd")
    offset_message, _ = strategies.DATA_DIFFING.diff(b"abc", b"abd")

    assert "reference 3 bytes, candidate 4 bytes" in size_message
    assert "offset 2" in offset_message
    assert strategies.data().path_extension is None


@dataclass
class _Point:
    x: float
    y: float
    tags: tuple[str, ...] = ()


def test_canonicalize_normalizes_containers_and_dataclasses() -> None:
    value = {"b": _Point(1.0, 2.5, ("z", "a")), "a": {3, 1, 2}, "text": "x\r\ny"}

    assert canonicalize(value) == {
        "a": [1, 2, 3],
        "b": {"tags": ["z", "a"], "x": 1.0, "y": 2.5},
        "text": "x\ny",
    }
    assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_canonicalize_ignored_and_unordered_fields() -> None:
    value = {"id": 7, "created_at": "now", "items": [3, 1, 2], "nested": {"created_at": "x"}}

    canonical = canonicalize(
        value,
        ignore_fields=frozenset({"created_at"}),
        unordered_fields=frozenset({"items"}),
    )

    assert canonical == {"id": 7, "items": [1, 2, 3], "nested": {}}


def test_canonicalize_rejects_unsupported_values() -> None:
    with pytest.raises(ValueError, match="NaN"):
        canonicalize({"value": float("nan")})
    with pytest.raises(TypeError, match="object"):
        canonicalize({"value": object()})


def test_json_strategy_round_trips_canonical_form() -> None:
    strategy = strategies.json()
    produced = _produce(strategy, {"b": (1, 2), "a": 0.1 + 0.2})

    assert strategy.path_extension == "json"
    assert produced == {"a": 0.3, "b": [1, 2]}
    assert strategy.diffing.round_trips(produced)
    assert strategy.diffing.to_data(produced).decode("utf-8").endswith("}\n")


def test_json_diff_lists_pointer_paths_and_attaches_changes() -> None:
    diffing = strategies.json_diffing()

    message, attachments = diffing.diff(
        {"user": {"name": "ada", "roles": ["admin"]}},
        {"user": {"name": "grace", "roles": ["admin", "ops"]}},
    )

    assert "changed=1 missing_reference=1 missing_candidate=0" in message
    assert '/user/name: "ada" -> "grace"' in message
    payload = json.loads(attachments[0].payload.decode("utf-8"))
    assert attachments[0].name == "changes.json"
    assert payload["summary"]["changed"] == 1
    assert [change["path"] for change in payload["changes"]] == ["/user/name", "/user/roles/1"]


def test_diff_values_truncates() -> None:
    result = diff_values(list(range(10)), list(range(10, 20)), max_changes=3)

    assert len(result.changes) == 3
    assert result.truncated is True


def test_json_pointer_escaping() -> None:
    result = diff_values({"a/b": 1, "c~d": 1}, {"a/b": 2, "c~d": 2})

    assert [change.path for change in result.changes] == ["/a~1b", "/c~0d"]


def test_render_line_diff_is_empty_for_identical_lines() -> None:
    assert render_line_diff("same\n", "same\n") == ""


def test_dump_strategy_uses_pprint_representation() -> None:
    produced = _produce(strategies.dump(), {"b": [1, 2], "a": "x"})

    assert produced == "{'a': 'x', 'b': [1, 2]}\n"


def test_pullback_and_async_pullback() -> None:
    upper = strategies.lines().pullback(str.upper)
    delayed = strategies.lines().async_pullback(
        lambda number: Async.from_callable(lambda: f"n={number}")
    )

    assert _produce(upper, "abc") == "ABC"
    assert _produce(delayed, 4) == "n=4"
    assert upper.path_extension == "txt"
    assert upper.diffing is strategies.LINES_DIFFING


def test_strategy_by_name() -> None:
    assert strategies.strategy_by_name("json").path_extension == "json"
    with pytest.raises(ValueError, match="Unknown strategy: yaml"):
        strategies.strategy_by_name("yaml")


def test_json_strategy_end_to_end(tmp_path: Path) -> None:
    case = SnapshotCase(
        file=tmp_path / "ApiTests.py",
        test_name="test_payload",
        artifacts_root=tmp_path / "artifacts",
        diff_tool=None,
    )
    strategy = strategies.json(ignore_fields=frozenset({"request_id"}))

    recorded = case.verify_snapshot({"status": "ok", "request_id": "a1"}, strategy, name="payload")
    matched = case.verify_snapshot({"request_id": "b2", "status": "ok"}, strategy, name="payload")
    changed = case.verify_snapshot({"status": "error"}, strategy, name="payload")

    assert recorded.status == "recorded"
    assert Path(recorded.reference_path).name == "test_payload.payload.json"
    assert matched.passed is True
    assert changed.kind == "mismatch"
    assert '/status: "ok" -> "error"' in changed.message
    assert changed.attachments[0].name == "changes.json"


def test_lines_diff_keeps_content_lines_that_look_like_headers() -> None:
    removed, _ = strategies.LINES_DIFFING.diff("a\n--x\nb\n", "a\nb\n")
    added, attachments = strategies.LINES_DIFFING.diff("a\nb\n", "a\n++y\nb\n")

    assert removed.splitlines() == ["@@ -1,3 +1,2 @@", " a", f"{MINUS}--x", " b"]
    assert added.splitlines() == ["@@ -1,2 +1,3 @@", " a", "+++y", " b"]
    assert attachments[0].payload.decode("utf-8") == added


def test_json_diff_tells_missing_keys_from_marker_like_strings() -> None:
    result = diff_values({"a": "<MISSING>"}, {"a": "x", "b": 1})

    rendered = render_value_changes(result)

    assert '  /a: "<MISSING>" -> "x"' in rendered
    assert "  /b: <MISSING> -> 1" in rendered
