"""pytest integration: a per-test ``snapshot`` fixture."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from snappack.config import default_diff_tool
from snappack.engine import SnapshotCase, SnapshotResult

_CASE_KEY = pytest.StashKey[SnapshotCase]()
_REPORTED_KEY = pytest.StashKey[int]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("snapkit", "snapshot assertions")
    group.addoption(
        "--snapshot-record",
        action="store_true",
        default=False,
        help="Record every snapshot reference instead of comparing.",
    )
    group.addoption(
        "--snapshot-diff-tool",
        action="store",
        default=None,
        help="Diff tool command line shown in mismatch messages.",
    )
    group.addoption(
        "--snapshot-timeout",
        action="store",
        type=float,
        default=None,
        help="Seconds to wait for a snapshot to be produced (default 5).",
    )


def _test_name(item: pytest.Item) -> str:
    cls = getattr(item, "cls", None)
    if cls is None:
        return item.name
    return f"{cls.__name__}.{item.name}"


def _failure_summary(failures: list[SnapshotResult]) -> str:
    messages = "\n\n".join(f"[{failure.snapshot_name}] {failure.message}" for failure in failures)
    return f"{len(failures)} snapshot assertion(s) failed:\n\n{messages}"


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> Iterator[None]:
    outcome = yield
    report = outcome.get_result()
    case = item.stash.get(_CASE_KEY, None)
    if case is None or report.when != "call" or not case.failures:
        return

    summary = _failure_summary(case.failures)
    if report.passed:
        report.outcome = "failed"
        report.longrepr = summary
    else:
        report.sections.append(("snapshot assertions", summary))
    item.stash[_REPORTED_KEY] = len(case.failures)


@pytest.fixture
def snapshot(request: pytest.FixtureRequest) -> Iterator[SnapshotCase]:
    """A ``SnapshotCase`` bound to the requesting test.

    Failures are collected while the test body runs and reported together as
    the test's failure, so one mismatch does not hide the next. Tests defined
    in a class are named ``<Class>.<test>``, which sanitizes to
    ``<Class>-<test>`` in reference filenames. Failures from assertions made
    after the test body (in other fixtures' teardown) surface as teardown
    errors.
    """
    config = request.config
    case = SnapshotCase(
        record=bool(config.getoption("--snapshot-record")),
        diff_tool=config.getoption("--snapshot-diff-tool") or default_diff_tool(),
        file=Path(str(request.node.path)),
        test_name=_test_name(request.node),
        failure_mode="collect",
    )
    timeout = config.getoption("--snapshot-timeout")
    if timeout is not None:
        case.timeout = timeout
    request.node.stash[_CASE_KEY] = case

    yield case

    unreported = case.failures[request.node.stash.get(_REPORTED_KEY, 0) :]
    if unreported:
        pytest.fail(_failure_summary(unreported), pytrace=False)
