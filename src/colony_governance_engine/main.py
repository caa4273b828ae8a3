"""Colony governance CLI - colony-governance command.

The engine itself never touches the filesystem; this module is the caller
that reads activity snapshots and history files, runs the engines and
prints (or writes) JSON results.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from colony_governance_engine import __version__
from colony_governance_engine.core.models import ActivitySnapshot, camel_case_keys
from colony_governance_engine.core.temporal import parse_timestamp
from colony_governance_engine.decision_support import detect_bottlenecks, suggest_actions
from colony_governance_engine.observability import configure_logging, get_logger
from colony_governance_engine.operations import compute_governance_ops
from colony_governance_engine.time_machine import (
    GovernanceHistoryArtifact,
    GovernanceSnapshot,
    append_snapshot,
    build_history_artifact,
    compute_snapshot,
    parse_history_artifact,
    replay_artifact,
    with_integrity,
)

logger = get_logger(__name__)

DEFAULT_GENERATOR = "colony-governance-engine"


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise click.ClickException(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}") from exc


def _load_activity(path: Path) -> ActivitySnapshot:
    raw = _read_json(path)
    try:
        return ActivitySnapshot.model_validate(raw)
    except ValidationError as exc:
        raise click.ClickException(
            f"{path} is not a valid activity snapshot ({exc.error_count()} errors):\n{exc}"
        ) from exc


def _load_history(path: Path) -> GovernanceHistoryArtifact:
    artifact = parse_history_artifact(_read_json(path))
    if artifact is None:
        raise click.ClickException(f"Invalid governance history file: {path}")
    return artifact


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _parse_bound(value: str | None, flag: str) -> Any:
    if value is None:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise click.BadParameter("must be an ISO-8601 date/time", param_hint=flag)
    return parsed


@click.group()
@click.version_option(version=__version__, prog_name="colony-governance")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Colony governance - operational health of a self-governing project."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


@cli.command("ops")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--now", default=None, help="Evaluation time (ISO-8601); defaults to generatedAt")
def ops_command(snapshot: Path, now: str | None) -> None:
    """Print the governance ops report (SLOs, incidents, budget) as JSON.

    SNAPSHOT is an activity snapshot JSON file.
    """
    data = _load_activity(snapshot)
    report = compute_governance_ops(data, now=now)
    _echo_json(report.to_dict())


@cli.command("bottlenecks")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def bottlenecks_command(snapshot: Path) -> None:
    """Print governance bottlenecks and suggested actions as JSON.

    SNAPSHOT is an activity snapshot JSON file.
    """
    data = _load_activity(snapshot)
    bottlenecks = detect_bottlenecks(data)
    actions = suggest_actions(bottlenecks)
    _echo_json(
        {
            "bottlenecks": [camel_case_keys(asdict(bottleneck)) for bottleneck in bottlenecks],
            "actions": [camel_case_keys(asdict(action)) for action in actions],
        }
    )


@cli.command("snapshot")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--history",
    "history_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Existing history artifact (or legacy array) to append to",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the artifact here instead of stdout",
)
@click.option("--generated-by", default=DEFAULT_GENERATOR, show_default=True)
@click.option("--generator-version", default=__version__, show_default=True)
@click.option("--commit-sha", default=None, help="Source commit the data was generated at")
@click.option("--missing-repo", "missing_repositories", multiple=True, help="Repository that could not be read")
@click.option("--permission-gap", "permission_gaps", multiple=True, help="Data withheld for lack of permissions")
@click.option("--api-partial", "api_partials", multiple=True, help="API response known to be truncated")
def snapshot_command(
    snapshot: Path,
    history_path: Path | None,
    output_path: Path | None,
    generated_by: str,
    generator_version: str,
    commit_sha: str | None,
    missing_repositories: tuple[str, ...],
    permission_gaps: tuple[str, ...],
    api_partials: tuple[str, ...],
) -> None:
    """Append a health snapshot to the history and emit the signed artifact.

    SNAPSHOT is an activity snapshot JSON file.
    """
    data = _load_activity(snapshot)
    current = compute_snapshot(data)

    prior: list[GovernanceSnapshot] = []
    if history_path is not None and history_path.exists():
        prior = _load_history(history_path).snapshots

    artifact = with_integrity(
        build_history_artifact(
            generated_at=data.generated_at,
            snapshots=append_snapshot(prior, current),
            repositories=data.repository_tags,
            generated_by=generated_by,
            generator_version=generator_version,
            source_commit_sha=commit_sha,
            missing_repositories=missing_repositories,
            permission_gaps=permission_gaps,
            api_partials=api_partials,
        )
    )

    payload = artifact.to_json_dict()
    if output_path is None:
        _echo_json(payload)
        return

    output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug("History artifact written", path=str(output_path), snapshots=len(artifact.snapshots))
    click.echo(f"Wrote {len(artifact.snapshots)} snapshots to {output_path}")


@cli.command("replay")
@click.argument("history", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--from", "from_", default=None, help="Window start (ISO-8601, inclusive)")
@click.option("--to", "to", default=None, help="Window end (ISO-8601, inclusive)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def replay_command(
    ctx: click.Context,
    history: Path,
    from_: str | None,
    to: str | None,
    as_json: bool,
) -> None:
    """Replay governance health from a history artifact.

    Exits with status 1 when the artifact carries an integrity digest that
    does not match its content.
    """
    start = _parse_bound(from_, "--from")
    end = _parse_bound(to, "--to")
    if start is not None and end is not None and start > end:
        raise click.UsageError("--from cannot be later than --to")

    artifact = _load_history(history)
    result = replay_artifact(artifact, start, end)

    if as_json:
        _echo_json(result.to_dict(artifact))
    else:
        summary = result.summary
        repos = ", ".join(artifact.provenance.repositories) or "unknown"

        def show(value: Any) -> str:
            return "n/a" if value is None else str(value)

        click.echo(f"Schema: v{artifact.schema_version}")
        click.echo(f"Generated: {artifact.generated_at}")
        click.echo(f"Repositories: {repos}")
        click.echo(f"Completeness: {artifact.completeness.status}")
        click.echo(f"Integrity: {result.integrity}")
        click.echo(f"Replay points: {summary.points}")
        click.echo(f"Window: {show(summary.start)} -> {show(summary.end)}")
        click.echo(
            f"Health: first={show(summary.first_health)} last={show(summary.last_health)} "
            f"delta={show(summary.delta_health)} avg={show(summary.average_health)}"
        )

    if artifact.integrity is not None and result.integrity == "unverified":
        ctx.exit(1)


if __name__ == "__main__":
    cli()
