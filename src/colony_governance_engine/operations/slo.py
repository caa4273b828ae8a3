"""Service-level objective checks for governance operations.

Five independent checks, each resolving to healthy / at-risk / breach:

- proposal-cycle-time: discussion -> ready-to-implement median hours
- implementation-lead-time: ready-to-implement -> first merged PR median hours
- blocked-ready-work: share of aged ready proposals without an active PR
- dashboard-freshness: age of the activity snapshot
- discoverability-health: externally supplied visibility score

Insufficient data never raises; each check reports a fixed fallback status.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from colony_governance_engine.core.models import (
    ActivitySnapshot,
    ExternalVisibility,
    Proposal,
)
from colony_governance_engine.core.temporal import (
    format_hours,
    hours_between,
    median,
    parse_timestamp,
    round_half_up,
)
from colony_governance_engine.observability import get_logger
from colony_governance_engine.operations.cross_reference import (
    CrossReferenceIndex,
    index_pull_requests_by_issue,
    linked_pull_requests,
)
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)

SLOStatus = Literal["healthy", "at-risk", "breach"]
OverallStatus = Literal["green", "yellow", "red"]

STATUS_HEALTHY: SLOStatus = "healthy"
STATUS_AT_RISK: SLOStatus = "at-risk"
STATUS_BREACH: SLOStatus = "breach"

SLO_SCORE_BY_STATUS: dict[str, int] = {
    STATUS_HEALTHY: 100,
    STATUS_AT_RISK: 65,
    STATUS_BREACH: 30,
}

PHASE_DISCUSSION = "discussion"
PHASE_READY = "ready-to-implement"


@dataclass(frozen=True)
class GovernanceSLOCheck:
    """Result of one SLO evaluation.

    Attributes:
        id: Stable check identifier (e.g. "proposal-cycle-time").
        label: Human-readable name.
        target: Human-readable threshold.
        status: healthy, at-risk or breach.
        value: Current measurement rendered for display.
        details: Optional explanation of the measurement or fallback.
    """

    id: str
    label: str
    target: str
    status: SLOStatus
    value: str
    details: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def phase_entered_at(proposal: Proposal, phase: str) -> datetime | None:
    """Earliest valid entry into ``phase``; re-entries never move it later."""
    entries = [
        parse_timestamp(transition.entered_at)
        for transition in proposal.phase_transitions or []
        if transition.phase == phase
    ]
    valid = [entry for entry in entries if entry is not None]
    return min(valid) if valid else None


def _status_at_most(value: float, healthy: float, at_risk: float) -> SLOStatus:
    if value <= healthy:
        return STATUS_HEALTHY
    if value <= at_risk:
        return STATUS_AT_RISK
    return STATUS_BREACH


def _status_at_least(value: float, healthy: float, at_risk: float) -> SLOStatus:
    if value >= healthy:
        return STATUS_HEALTHY
    if value >= at_risk:
        return STATUS_AT_RISK
    return STATUS_BREACH


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def evaluate_proposal_cycle_time(
    proposals: Iterable[Proposal],
    settings: Settings | None = None,
) -> GovernanceSLOCheck:
    """Median hours from first discussion entry to first ready-to-implement entry.

    Args:
        proposals: All proposals in the snapshot.
        settings: Optional threshold overrides.

    Returns:
        The proposal-cycle-time check; at-risk when no proposal reached ready.
    """
    settings = settings or get_settings()
    target = f"<= {_format_number(settings.cycle_time_healthy_hours)}h median (discussion -> ready)"
    cycle_hours: list[float] = []

    for proposal in proposals:
        ready_at = phase_entered_at(proposal, PHASE_READY)
        if ready_at is None:
            continue
        discussion_at = phase_entered_at(proposal, PHASE_DISCUSSION) or parse_timestamp(
            proposal.created_at
        )
        hours = hours_between(discussion_at, ready_at)
        if hours is not None:
            cycle_hours.append(hours)

    median_hours = median(cycle_hours)
    if median_hours is None:
        return GovernanceSLOCheck(
            id="proposal-cycle-time",
            label="Proposal cycle time",
            target=target,
            status=STATUS_AT_RISK,
            value="n/a",
            details="No proposals have reached ready-to-implement yet.",
        )

    return GovernanceSLOCheck(
        id="proposal-cycle-time",
        label="Proposal cycle time",
        target=target,
        status=_status_at_most(
            median_hours,
            settings.cycle_time_healthy_hours,
            settings.cycle_time_at_risk_hours,
        ),
        value=f"{format_hours(median_hours)} median",
        details=f"{_plural(len(cycle_hours), 'proposal cycle')} measured.",
    )


def evaluate_implementation_lead_time(
    proposals: Iterable[Proposal],
    index: CrossReferenceIndex,
    default_repo: str,
    settings: Settings | None = None,
) -> GovernanceSLOCheck:
    """Median hours from ready-to-implement to the earliest merge of a linked PR.

    A merge recorded before the ready entry yields no sample: it cannot be
    the implementation of the approved proposal.

    Args:
        proposals: All proposals in the snapshot.
        index: Cross-reference index over PRs of every state.
        default_repo: Primary repository tag.
        settings: Optional threshold overrides.

    Returns:
        The implementation-lead-time check. Without samples it is a breach
        when some ready proposal has no merged PR, else at-risk.
    """
    settings = settings or get_settings()
    target = f"<= {_format_number(settings.lead_time_healthy_hours)}h median (ready -> merged)"
    lead_hours: list[float] = []
    ready_without_merged = 0

    for proposal in proposals:
        ready_at = phase_entered_at(proposal, PHASE_READY)
        if ready_at is None:
            continue

        merged_times = [
            merged_at
            for pr in linked_pull_requests(index, proposal.repo, proposal.number, default_repo)
            if pr.state == "merged"
            and (merged_at := parse_timestamp(pr.merged_at)) is not None
        ]
        if not merged_times:
            ready_without_merged += 1
            continue

        hours = hours_between(ready_at, min(merged_times))
        if hours is not None:
            lead_hours.append(hours)

    median_hours = median(lead_hours)
    if median_hours is None:
        return GovernanceSLOCheck(
            id="implementation-lead-time",
            label="Implementation lead time",
            target=target,
            status=STATUS_BREACH if ready_without_merged > 0 else STATUS_AT_RISK,
            value=f"{ready_without_merged} ready without merged PR",
            details=(
                "Ready work is waiting on implementation completion."
                if ready_without_merged > 0
                else "No ready proposals with merged implementations yet."
            ),
        )

    return GovernanceSLOCheck(
        id="implementation-lead-time",
        label="Implementation lead time",
        target=target,
        status=_status_at_most(
            median_hours,
            settings.lead_time_healthy_hours,
            settings.lead_time_at_risk_hours,
        ),
        value=f"{format_hours(median_hours)} median",
        details=f"{_plural(len(lead_hours), 'ready-to-merge cycle')} measured.",
    )


def evaluate_blocked_ready_work(
    proposals: Iterable[Proposal],
    index: CrossReferenceIndex,
    default_repo: str,
    now: datetime | None,
    settings: Settings | None = None,
) -> GovernanceSLOCheck:
    """Share of ready-to-implement proposals stuck without active implementation.

    A proposal is blocked when it has been ready for at least
    ``blocked_ready_min_age_hours`` and no linked PR is open or merged.

    Args:
        proposals: All proposals in the snapshot.
        index: Cross-reference index over PRs of every state.
        default_repo: Primary repository tag.
        now: Evaluation time; None means ages cannot be measured.
        settings: Optional threshold overrides.

    Returns:
        The blocked-ready-work check; healthy (0/0) when nothing is ready.
    """
    settings = settings or get_settings()
    ready_proposals = [p for p in proposals if p.phase == PHASE_READY]
    blocked_count = 0

    for proposal in ready_proposals:
        ready_at = phase_entered_at(proposal, PHASE_READY) or parse_timestamp(proposal.created_at)
        age_hours = hours_between(ready_at, now)
        if age_hours is None or age_hours < settings.blocked_ready_min_age_hours:
            continue

        linked = linked_pull_requests(index, proposal.repo, proposal.number, default_repo)
        if not any(pr.state in ("open", "merged") for pr in linked):
            blocked_count += 1

    total_ready = len(ready_proposals)
    blocked_ratio = blocked_count / total_ready if total_ready > 0 else 0.0
    min_age = _format_number(settings.blocked_ready_min_age_hours)

    return GovernanceSLOCheck(
        id="blocked-ready-work",
        label="Blocked ready work",
        target=(
            f"<= {_format_number(round_half_up(settings.blocked_ready_healthy_ratio * 100))}% "
            f"ready proposals blocked >{min_age}h"
        ),
        status=_status_at_most(
            blocked_ratio,
            settings.blocked_ready_healthy_ratio,
            settings.blocked_ready_at_risk_ratio,
        ),
        value=(
            f"{blocked_count}/{total_ready} blocked "
            f"({_format_number(round_half_up(blocked_ratio * 100))}%)"
        ),
        details=(
            "No proposals currently in ready-to-implement phase."
            if total_ready == 0
            else f"Blocked means ready >{min_age}h with no open or merged linked PR."
        ),
    )


def evaluate_dashboard_freshness(
    generated_at: str,
    now: datetime | None,
    settings: Settings | None = None,
) -> GovernanceSLOCheck:
    """Hours between snapshot generation and evaluation time.

    Args:
        generated_at: The snapshot's ISO-8601 generation time.
        now: Evaluation time.
        settings: Optional threshold overrides.

    Returns:
        The dashboard-freshness check; a breach when generated_at is invalid.
    """
    settings = settings or get_settings()
    target = f"<= {_format_number(settings.freshness_healthy_hours)}h since last data generation"
    generated = parse_timestamp(generated_at)

    if generated is None or now is None:
        logger.warning("Snapshot generatedAt is not a valid timestamp", generated_at=generated_at)
        return GovernanceSLOCheck(
            id="dashboard-freshness",
            label="Dashboard freshness",
            target=target,
            status=STATUS_BREACH,
            value="invalid timestamp",
            details="Latest snapshot timestamp is invalid. Verify generatedAt formatting.",
        )

    age_hours = max(0.0, (now - generated).total_seconds() / 3600)
    return GovernanceSLOCheck(
        id="dashboard-freshness",
        label="Dashboard freshness",
        target=target,
        status=_status_at_most(
            age_hours,
            settings.freshness_healthy_hours,
            settings.freshness_at_risk_hours,
        ),
        value=f"{format_hours(age_hours)} old",
        details=f"Generated at {generated_at}",
    )


def evaluate_discoverability(
    visibility: ExternalVisibility | None,
    settings: Settings | None = None,
) -> GovernanceSLOCheck:
    """Grade the externally supplied visibility score.

    Args:
        visibility: The optional external visibility block.
        settings: Optional threshold overrides.

    Returns:
        The discoverability-health check; at-risk when no score is available.
    """
    settings = settings or get_settings()
    target = f">= {_format_number(settings.discoverability_healthy_score)}/100 external visibility score"

    if visibility is None:
        return GovernanceSLOCheck(
            id="discoverability-health",
            label="Discoverability health",
            target=target,
            status=STATUS_AT_RISK,
            value="n/a",
            details="External visibility data not available.",
        )

    return GovernanceSLOCheck(
        id="discoverability-health",
        label="Discoverability health",
        target=target,
        status=_status_at_least(
            visibility.score,
            settings.discoverability_healthy_score,
            settings.discoverability_at_risk_score,
        ),
        value=f"{_format_number(visibility.score)}/100",
        details="Derived from repository metadata and public-site checks.",
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def evaluate_slos(
    data: ActivitySnapshot,
    now: datetime | None,
    index: CrossReferenceIndex | None = None,
    settings: Settings | None = None,
) -> list[GovernanceSLOCheck]:
    """Run all five SLO checks in their fixed order.

    Args:
        data: The activity snapshot.
        now: Evaluation time (normally the snapshot's generatedAt).
        index: Optional prebuilt cross-reference index over all PRs.
        settings: Optional threshold overrides.

    Returns:
        The five checks: cycle time, lead time, blocked work, freshness,
        discoverability.
    """
    settings = settings or get_settings()
    default_repo = data.default_repo
    if index is None:
        index = index_pull_requests_by_issue(data.pull_requests, default_repo)

    checks = [
        evaluate_proposal_cycle_time(data.proposals, settings),
        evaluate_implementation_lead_time(data.proposals, index, default_repo, settings),
        evaluate_blocked_ready_work(data.proposals, index, default_repo, now, settings),
        evaluate_dashboard_freshness(data.generated_at, now, settings),
        evaluate_discoverability(data.external_visibility, settings),
    ]

    logger.debug(
        "SLO evaluation complete",
        statuses={check.id: check.status for check in checks},
    )
    return checks


def aggregate_score(checks: Sequence[GovernanceSLOCheck]) -> int:
    """Mean per-status score (healthy=100, at-risk=65, breach=30), rounded."""
    if not checks:
        return 0
    total = sum(SLO_SCORE_BY_STATUS[check.status] for check in checks)
    return int(round_half_up(total / len(checks)))


def aggregate_status(checks: Sequence[GovernanceSLOCheck]) -> OverallStatus:
    """red if any check is breached, yellow if any is at risk, else green."""
    statuses = {check.status for check in checks}
    if STATUS_BREACH in statuses:
        return "red"
    if STATUS_AT_RISK in statuses:
        return "yellow"
    return "green"
