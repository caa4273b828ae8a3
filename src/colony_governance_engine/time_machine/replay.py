"""Replay of a governance history over a time window.

Summarizes how the health score moved between two points in time and
labels how far the underlying artifact can be trusted:

- verified: the integrity digest matches and the data is complete
- partial: the digest matches but the completeness report lists gaps
- unverified: no digest, or the digest does not match
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Literal

from colony_governance_engine.core.models import camel_case_keys
from colony_governance_engine.core.temporal import parse_timestamp, round_half_up
from colony_governance_engine.observability import get_logger
from colony_governance_engine.time_machine.artifact import GovernanceHistoryArtifact
from colony_governance_engine.time_machine.integrity import is_integrity_valid
from colony_governance_engine.time_machine.snapshot import GovernanceSnapshot

logger = get_logger(__name__)

IntegrityLabel = Literal["verified", "partial", "unverified"]


@dataclass(frozen=True)
class ReplaySummary:
    """Health-score statistics for the snapshots inside a replay window.

    All fields except ``points`` are None when the window is empty.
    """

    points: int
    start: str | None = None
    end: str | None = None
    first_health: float | None = None
    last_health: float | None = None
    delta_health: float | None = None
    min_health: float | None = None
    max_health: float | None = None
    average_health: float | None = None


@dataclass(frozen=True)
class ReplayResult:
    integrity: IntegrityLabel
    summary: ReplaySummary

    def to_dict(self, artifact: GovernanceHistoryArtifact) -> dict[str, Any]:
        """JSON payload combining artifact metadata with the replay outcome."""
        metadata = artifact.to_json_dict()
        return {
            "schemaVersion": metadata["schemaVersion"],
            "generatedAt": metadata["generatedAt"],
            "provenance": metadata["provenance"],
            "completeness": metadata["completeness"],
            "integrity": self.integrity,
            "summary": camel_case_keys(asdict(self.summary)),
        }


def summarize_replay(
    snapshots: Sequence[GovernanceSnapshot],
    start: datetime | None = None,
    end: datetime | None = None,
) -> ReplaySummary:
    """Summarize health scores of the snapshots within [start, end].

    Snapshots with unparsable timestamps are ignored. Either bound may be
    omitted to leave that side of the window open.

    Args:
        snapshots: Snapshot history in any order.
        start: Inclusive lower bound.
        end: Inclusive upper bound.

    Returns:
        The ReplaySummary; the average is rounded to 2 decimals.
    """
    dated: list[tuple[datetime, GovernanceSnapshot]] = []
    for snapshot in snapshots:
        moment = parse_timestamp(snapshot.timestamp)
        if moment is None:
            continue
        if start is not None and moment < start:
            continue
        if end is not None and moment > end:
            continue
        dated.append((moment, snapshot))
    dated.sort(key=lambda entry: entry[0])

    if not dated:
        return ReplaySummary(points=0)

    scores = [snapshot.health_score for _, snapshot in dated]
    return ReplaySummary(
        points=len(dated),
        start=dated[0][1].timestamp,
        end=dated[-1][1].timestamp,
        first_health=scores[0],
        last_health=scores[-1],
        delta_health=scores[-1] - scores[0],
        min_health=min(scores),
        max_health=max(scores),
        average_health=round_half_up(sum(scores) / len(scores), 2),
    )


def integrity_label(artifact: GovernanceHistoryArtifact) -> IntegrityLabel:
    if artifact.integrity is None or not is_integrity_valid(artifact):
        return "unverified"
    if artifact.completeness.status == "partial":
        return "partial"
    return "verified"


def replay_artifact(
    artifact: GovernanceHistoryArtifact,
    start: datetime | None = None,
    end: datetime | None = None,
) -> ReplayResult:
    """Replay an artifact's snapshots over a window and label its trustworthiness."""
    result = ReplayResult(
        integrity=integrity_label(artifact),
        summary=summarize_replay(artifact.snapshots, start, end),
    )
    logger.debug(
        "Governance history replayed",
        integrity=result.integrity,
        points=result.summary.points,
    )
    return result
