import json
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
import shutil
from typing import Any

import typer

from snappack.addressing import (
    artifacts_directory_for,
    resolve_identity,
    resolve_locations,
    snapshot_directory_for,
)
from snappack.strategies import strategy_by_name

app = typer.Typer(help="SnapKit CLI")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    no_color: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()
_COMPARE_STRATEGIES = ("lines", "data", "json")


def _resolve_cli_version() -> str:
    try:
        return package_version("snapkit")
    except PackageNotFoundError:
        from snappack import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show SnapKit version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable ANSI color output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.no_color = no_color
    _OUTPUT_OPTIONS.stable_json = stable_json


def _echo(message: str, *, err: bool = False, force: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err, color=not _OUTPUT_OPTIONS.no_color)


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
    else:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            indent=2,
        )
    typer.echo(rendered, err=err, color=not _OUTPUT_OPTIONS.no_color)


@app.command()
def paths(
    test_file: Path = typer.Argument(..., help="Test source file the snapshots belong to."),
    test_name: str = typer.Argument(..., help="Test function name."),
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Explicit snapshot name (takes precedence over --index).",
    ),
    index: int = typer.Option(
        1,
        "--index",
        "-i",
        help="Counter value of an unnamed snapshot.",
    ),
    extension: str | None = typer.Option(
        None,
        "--extension",
        "-e",
        help="Strategy path extension, without leading dot.",
    ),
    artifacts_root: Path | None = typer.Option(
        None,
        "--artifacts-root",
        help="Failure artifacts root (defaults to SNAPSHOT_ARTIFACTS or the temp directory).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable output.",
    ),
) -> None:
    """Resolve reference and failure-artifact locations for a snapshot."""
    if name is None and index < 1:
        _echo("paths failed: --index must be >= 1", err=True)
        raise typer.Exit(code=2)

    identity = resolve_identity(
        test_file,
        test_name,
        name=name,
        index=None if name is not None else index,
    )
    locations = resolve_locations(identity, extension, artifacts_root=artifacts_root)

    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "identity": identity.to_dict(),
                "reference_exists": locations.reference_path.exists(),
                **locations.to_dict(),
            }
        )
        return

    _echo(f"reference: {locations.reference_path}")
    _echo(f"failure artifact: {locations.failure_path}")


@app.command()
def compare(
    reference: Path = typer.Argument(..., help="Reference snapshot file."),
    candidate: Path = typer.Argument(..., help="Candidate snapshot file."),
    strategy: str = typer.Option(
        "lines",
        "--strategy",
        "-s",
        help="Diffing strategy: lines, data or json.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable comparison output.",
    ),
) -> None:
    """Compare two snapshot files with a reference diffing strategy."""
    if strategy not in _COMPARE_STRATEGIES:
        message = (
            f"Unsupported strategy: {strategy}. "
            f"Supported values: {', '.join(_COMPARE_STRATEGIES)}."
        )
        if json_output:
            _echo_json({"status": "error", "exit_code": 2, "message": message})
        else:
            _echo(message, err=True)
        raise typer.Exit(code=2)

    diffing = strategy_by_name(strategy).diffing
    try:
        reference_value = diffing.from_data(reference.read_bytes())
        candidate_value = diffing.from_data(candidate.read_bytes())
    except (OSError, ValueError) as error:
        message = f"compare failed: {error}"
        if json_output:
            _echo_json(
                {
                    "status": "error",
                    "exit_code": 1,
                    "message": message,
                    "reference_path": str(reference),
                    "candidate_path": str(candidate),
                }
            )
        else:
            _echo(message, err=True)
        raise typer.Exit(code=1) from error

    outcome = diffing.diff(reference_value, candidate_value)
    payload: dict[str, Any] = {
        "status": "pass" if outcome is None else "fail",
        "exit_code": 0 if outcome is None else 1,
        "strategy": strategy,
        "reference_path": str(reference),
        "candidate_path": str(candidate),
        "message": "snapshots match" if outcome is None else outcome[0].strip(),
        "attachments": [] if outcome is None else [item.to_dict() for item in outcome[1]],
    }

    if json_output:
        _echo_json(payload)
    elif outcome is None:
        _echo(f"snapshots match: reference={reference} candidate={candidate}")
    else:
        _echo(
            f"snapshots differ: reference={reference} candidate={candidate}",
            force=True,
        )
        _echo(payload["message"], force=True)

    if outcome is not None:
        raise typer.Exit(code=1)


@app.command()
def accept(
    test_file: Path = typer.Argument(..., help="Test source file whose failures to accept."),
    artifacts_root: Path | None = typer.Option(
        None,
        "--artifacts-root",
        help="Failure artifacts root (defaults to SNAPSHOT_ARTIFACTS or the temp directory).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List what would be accepted without copying.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable output.",
    ),
) -> None:
    """Copy failure artifacts of a test file over their references."""
    artifacts_directory = artifacts_directory_for(test_file, artifacts_root=artifacts_root)
    snapshot_directory = snapshot_directory_for(test_file)

    accepted: list[dict[str, str]] = []
    skipped: list[str] = []
    try:
        candidates = (
            sorted(path for path in artifacts_directory.iterdir() if path.is_file())
            if artifacts_directory.is_dir()
            else []
        )
        for failure_path in candidates:
            reference_path = snapshot_directory / failure_path.name
            # Only artifacts with an existing reference came from a mismatch.
            if not reference_path.is_file():
                skipped.append(str(failure_path))
                continue
            if not dry_run:
                shutil.copyfile(failure_path, reference_path)
                failure_path.unlink()
            accepted.append(
                {"failure_path": str(failure_path), "reference_path": str(reference_path)}
            )
    except OSError as error:
        message = f"accept failed: {error}"
        if json_output:
            _echo_json({"status": "error", "exit_code": 1, "message": message})
        else:
            _echo(message, err=True)
        raise typer.Exit(code=1) from error

    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "dry_run": dry_run,
                "artifacts_directory": str(artifacts_directory),
                "snapshot_directory": str(snapshot_directory),
                "accepted": accepted,
                "skipped": skipped,
            }
        )
        return

    verb = "would accept" if dry_run else "accepted"
    for item in accepted:
        _echo(f"{verb}: {item['failure_path']} -> {item['reference_path']}")
    _echo(f"{verb} {len(accepted)} snapshot(s), skipped {len(skipped)}")


def main() -> None:
    app()
