"""Tests for the colony-governance CLI."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from colony_governance_engine.core.models import ActivitySnapshot, Comment, Proposal
from colony_governance_engine.main import cli


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def snapshot_file(
    tmp_path: Path,
    make_activity: Callable[..., ActivitySnapshot],
    make_proposal: Callable[..., Proposal],
    make_comment: Callable[..., Comment],
) -> Path:
    """Activity snapshot with one stuck ready proposal and an open blocker."""
    data = make_activity(
        proposals=[
            make_proposal(
                number=1,
                phase="ready-to-implement",
                created_hours=-100,
                transitions=[("discussion", -100), ("ready-to-implement", -80)],
            )
        ],
        comments=[make_comment("BLOCKED: admin-required", hours=-5, number=1)],
    )
    path = tmp_path / "activity.json"
    path.write_text(json.dumps(data.model_dump(mode="json", by_alias=True)), encoding="utf-8")
    return path


def _invoke(runner: CliRunner, *args: str) -> Any:
    return runner.invoke(cli, list(args), catch_exceptions=False)


# ---------------------------------------------------------------------------
# ops / bottlenecks
# ---------------------------------------------------------------------------


def test_ops_prints_the_report(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(runner, "ops", str(snapshot_file))

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "red"
    assert payload["score"] == 72
    assert len(payload["slos"]) == 5
    assert payload["incidents"][0]["id"] == "issue-1-permissions"
    assert payload["reliabilityBudget"]["remaining"] == 46


def test_ops_accepts_an_evaluation_time(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(runner, "ops", str(snapshot_file), "--now", "2026-02-12T00:00:00Z")

    assert result.exit_code == 0
    freshness = json.loads(result.stdout)["slos"][3]
    assert freshness["value"] == "48h old"


def test_bottlenecks_prints_groups_and_actions(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(runner, "bottlenecks", str(snapshot_file))

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [b["type"] for b in payload["bottlenecks"]] == ["unclaimed-work"]
    assert payload["actions"][0]["priority"] == "low"
    assert payload["actions"][0]["issueNumber"] == 1


def test_report_keys_are_camel_case(runner: CliRunner, snapshot_file: Path) -> None:
    payload = json.loads(_invoke(runner, "ops", str(snapshot_file)).stdout)

    assert set(payload) == {"status", "score", "slos", "incidents", "reliabilityBudget", "incidentsByCategory"}
    assert payload["incidents"][0]["sourceType"] == "issue"
    assert payload["incidentsByCategory"]["ci-regression"] == 0


def test_verbose_logging_goes_to_stderr(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(runner, "-v", "ops", str(snapshot_file))

    assert result.exit_code == 0
    assert json.loads(result.stdout)["status"] == "red"
    assert "SLO evaluation complete" in result.stderr


def test_invalid_activity_snapshot_fails(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"generatedAt": "2026-02-10T00:00:00Z"}), encoding="utf-8")

    result = _invoke(runner, "ops", str(path))

    assert result.exit_code == 1
    assert "not a valid activity snapshot" in result.output


def test_non_json_file_fails(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    result = _invoke(runner, "bottlenecks", str(path))

    assert result.exit_code == 1
    assert "is not valid JSON" in result.output


# ---------------------------------------------------------------------------
# snapshot
# ---------------------------------------------------------------------------


def test_snapshot_prints_a_signed_artifact(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(runner, "snapshot", str(snapshot_file), "--commit-sha", "abc123")

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["schemaVersion"] == 1
    assert payload["generatedAt"] == "2026-02-10T00:00:00Z"
    assert payload["provenance"]["repositories"] == ["hivemoot/colony"]
    assert payload["provenance"]["sourceCommitSha"] == "abc123"
    assert payload["completeness"]["status"] == "complete"
    assert payload["integrity"]["algorithm"] == "sha256"
    assert len(payload["snapshots"]) == 1


def test_snapshot_appends_to_existing_history(
    runner: CliRunner, snapshot_file: Path, tmp_path: Path
) -> None:
    history = tmp_path / "history.json"

    first = _invoke(runner, "snapshot", str(snapshot_file), "--history", str(history), "--output", str(history))
    second = _invoke(runner, "snapshot", str(snapshot_file), "--history", str(history), "--output", str(history))

    assert first.exit_code == 0
    assert "Wrote 1 snapshots" in first.stdout
    assert second.exit_code == 0
    assert "Wrote 2 snapshots" in second.stdout
    assert len(json.loads(history.read_text(encoding="utf-8"))["snapshots"]) == 2


def test_snapshot_appends_to_legacy_history(
    runner: CliRunner, snapshot_file: Path, tmp_path: Path
) -> None:
    legacy = tmp_path / "legacy.json"
    seeded = json.loads(_invoke(runner, "snapshot", str(snapshot_file)).stdout)["snapshots"]
    legacy.write_text(json.dumps(seeded), encoding="utf-8")

    result = _invoke(runner, "snapshot", str(snapshot_file), "--history", str(legacy))

    payload = json.loads(result.stdout)
    assert payload["schemaVersion"] == 1
    assert len(payload["snapshots"]) == 2


def test_snapshot_gaps_mark_the_artifact_partial(runner: CliRunner, snapshot_file: Path) -> None:
    result = _invoke(
        runner,
        "snapshot",
        str(snapshot_file),
        "--missing-repo",
        "hivemoot/hivemoot",
        "--api-partial",
        "comments truncated",
    )

    completeness = json.loads(result.stdout)["completeness"]
    assert completeness["status"] == "partial"
    assert completeness["missingRepositories"] == ["hivemoot/hivemoot"]
    assert completeness["apiPartials"] == ["comments truncated"]


# ---------------------------------------------------------------------------
# replay
# ---------------------------------------------------------------------------


@pytest.fixture()
def history_file(runner: CliRunner, snapshot_file: Path, tmp_path: Path) -> Path:
    path = tmp_path / "history.json"
    result = _invoke(runner, "snapshot", str(snapshot_file), "--output", str(path))
    assert result.exit_code == 0
    return path


def test_replay_text_output(runner: CliRunner, history_file: Path) -> None:
    result = _invoke(runner, "replay", str(history_file))

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "Schema: v1"
    assert "Repositories: hivemoot/colony" in lines
    assert "Completeness: complete" in lines
    assert "Integrity: verified" in lines
    assert "Replay points: 1" in lines
    assert "Window: 2026-02-10T00:00:00Z -> 2026-02-10T00:00:00Z" in lines


def test_replay_json_output_with_empty_window(runner: CliRunner, history_file: Path) -> None:
    result = _invoke(runner, "replay", str(history_file), "--from", "2030-01-01", "--json")

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["integrity"] == "verified"
    assert payload["summary"]["points"] == 0
    assert payload["summary"]["averageHealth"] is None


def test_replay_of_tampered_history_exits_nonzero(runner: CliRunner, history_file: Path) -> None:
    payload = json.loads(history_file.read_text(encoding="utf-8"))
    payload["snapshots"][0]["healthScore"] = 100
    history_file.write_text(json.dumps(payload), encoding="utf-8")

    result = _invoke(runner, "replay", str(history_file))

    assert result.exit_code == 1
    assert "Integrity: unverified" in result.stdout


def test_replay_of_legacy_history_is_unverified_but_succeeds(
    runner: CliRunner, history_file: Path, tmp_path: Path
) -> None:
    legacy = tmp_path / "legacy.json"
    snapshots = json.loads(history_file.read_text(encoding="utf-8"))["snapshots"]
    legacy.write_text(json.dumps(snapshots), encoding="utf-8")

    result = _invoke(runner, "replay", str(legacy))

    assert result.exit_code == 0
    assert "Schema: v0" in result.stdout
    assert "Integrity: unverified" in result.stdout


def test_replay_rejects_reversed_window(runner: CliRunner, history_file: Path) -> None:
    result = _invoke(runner, "replay", str(history_file), "--from", "2026-03-01", "--to", "2026-02-01")

    assert result.exit_code == 2


def test_replay_rejects_unparsable_bound(runner: CliRunner, history_file: Path) -> None:
    result = _invoke(runner, "replay", str(history_file), "--to", "yesterday")

    assert result.exit_code == 2


def test_replay_rejects_unrecognised_history(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"snapshots": "none"}), encoding="utf-8")

    result = _invoke(runner, "replay", str(path))

    assert result.exit_code == 1
    assert "Invalid governance history file" in result.output
