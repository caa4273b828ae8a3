"""Governance operations engine: SLOs, incidents and reliability budget.

The engine processes an activity snapshot by:
1. Resolving the evaluation time (explicit ``now`` or the snapshot's generatedAt)
2. Building the cross-reference index over every pull request
3. Evaluating the five SLO checks
4. Detecting open incidents from comment markers
5. Spending the reliability budget
6. Returning a GovernanceOpsReport

Evaluation is a pure function of the snapshot and ``now``; the wall clock is
never consulted, so replaying an old snapshot reproduces its report.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from colony_governance_engine.core.models import ActivitySnapshot, camel_case_keys
from colony_governance_engine.core.temporal import parse_timestamp
from colony_governance_engine.observability import get_logger
from colony_governance_engine.operations.cross_reference import index_pull_requests_by_issue
from colony_governance_engine.operations.incidents import (
    GovernanceIncident,
    detect_incidents,
    summarize_incidents_by_category,
)
from colony_governance_engine.operations.reliability import (
    ReliabilityBudget,
    compute_reliability_budget,
)
from colony_governance_engine.operations.slo import (
    GovernanceSLOCheck,
    OverallStatus,
    aggregate_score,
    aggregate_status,
    evaluate_slos,
)
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class GovernanceOpsReport:
    """Complete operational-health report for one snapshot.

    Attributes:
        status: green, yellow or red rollup of the SLO statuses.
        score: Mean SLO score, 0-100.
        slos: The five SLO checks in fixed order.
        incidents: Open incidents, oldest first.
        reliability_budget: Remaining budget and recommendation.
        incidents_by_category: Incident count per taxonomy class.
    """

    status: OverallStatus
    score: int
    slos: list[GovernanceSLOCheck]
    incidents: list[GovernanceIncident]
    reliability_budget: ReliabilityBudget
    incidents_by_category: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return camel_case_keys(asdict(self))


def resolve_evaluation_time(data: ActivitySnapshot, now: str | datetime | None) -> datetime | None:
    """Pick the reference time for age computations.

    Args:
        data: The activity snapshot.
        now: Explicit evaluation time; an unparsable string falls back to
            the snapshot's generatedAt.

    Returns:
        The evaluation time, or None when neither value is a valid timestamp.
    """
    if isinstance(now, datetime):
        return now
    resolved = parse_timestamp(now) if now is not None else None
    if resolved is None:
        if now is not None:
            logger.warning("Ignoring invalid evaluation time", now=now)
        resolved = parse_timestamp(data.generated_at)
    return resolved


class GovernanceOpsEngine:
    """Derives the governance operations report from activity snapshots.

    Holds only the (read-only) settings, so one instance can evaluate any
    number of snapshots concurrently.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize GovernanceOpsEngine.

        Args:
            settings: Threshold overrides; defaults to the cached environment settings.
        """
        self._settings = settings or get_settings()

    def evaluate(
        self,
        data: ActivitySnapshot,
        now: str | datetime | None = None,
    ) -> GovernanceOpsReport:
        """Evaluate SLOs, incidents and the reliability budget.

        Args:
            data: The activity snapshot.
            now: Optional ISO-8601 evaluation time (defaults to generatedAt).

        Returns:
            GovernanceOpsReport for the snapshot.
        """
        evaluation_time = resolve_evaluation_time(data, now)
        default_repo = data.default_repo

        index = index_pull_requests_by_issue(data.pull_requests, default_repo)
        slos = evaluate_slos(data, evaluation_time, index=index, settings=self._settings)

        if evaluation_time is None:
            incidents: list[GovernanceIncident] = []
        else:
            incidents = detect_incidents(
                data.comments,
                evaluation_time,
                default_repo=default_repo,
                settings=self._settings,
            )

        budget = compute_reliability_budget(
            [slo.status for slo in slos],
            len(incidents),
            settings=self._settings,
        )

        report = GovernanceOpsReport(
            status=aggregate_status(slos),
            score=aggregate_score(slos),
            slos=slos,
            incidents=incidents,
            reliability_budget=budget,
            incidents_by_category=summarize_incidents_by_category(incidents),
        )

        logger.debug(
            "Governance ops report computed",
            repository=default_repo,
            status=report.status,
            score=report.score,
            incidents=len(incidents),
            budget_remaining=budget.remaining,
        )
        return report


def compute_governance_ops(
    data: ActivitySnapshot,
    now: str | datetime | None = None,
    settings: Settings | None = None,
) -> GovernanceOpsReport:
    """Convenience wrapper around ``GovernanceOpsEngine.evaluate``."""
    return GovernanceOpsEngine(settings).evaluate(data, now)
