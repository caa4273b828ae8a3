"""Governance health snapshots and the capped snapshot history.

A snapshot condenses one activity snapshot into a 0-100 health score built
from four sub-scores, each bounded to 25 points:

- participation: evenness of activity across active agents (1 - Gini)
- pipeline flow: share of proposals that advanced past discussion / finished
- follow-through: implemented share of approved proposals
- consensus quality: vote turnout, outcome diversity and discussion depth

The history keeps at most MAX_HISTORY_ENTRIES snapshots (30 days at 6h
intervals), dropping the oldest first.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import timedelta

from pydantic import Field

from colony_governance_engine.core.models import (
    ACTIVE_PHASES,
    TERMINAL_PHASES,
    ActivitySnapshot,
    AgentStats,
    CamelModel,
    Proposal,
)
from colony_governance_engine.core.temporal import clamp, parse_timestamp, round_half_up
from colony_governance_engine.observability import get_logger
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)

MAX_HISTORY_ENTRIES = 120

SUB_SCORE_MAX = 25
# Score used when nothing has been approved yet: neither good nor bad follow-through
NEUTRAL_FOLLOW_THROUGH = 12


class GovernanceSnapshot(CamelModel):
    """One point of the governance health history.

    Attributes:
        timestamp: ISO-8601 time the snapshot describes.
        health_score: Composite 0-100 score, always a multiple of 5.
        participation: Participation sub-score (0-25).
        pipeline_flow: Pipeline flow sub-score (0-25).
        follow_through: Follow-through sub-score (0-25).
        consensus_quality: Consensus quality sub-score (0-25).
        active_proposals: Proposals still in discussion, voting or ready.
        total_proposals: All proposals in the activity snapshot.
        active_agents: Agents with any commits, merges, reviews or comments.
        proposal_velocity: Proposals resolved per day over the trailing
            window, or None when no proposal has been resolved.
    """

    timestamp: str = Field(..., description="ISO-8601 time the snapshot describes")
    health_score: int | float = Field(..., description="Composite 0-100 health score")
    participation: int | float = Field(..., description="Participation sub-score (0-25)")
    pipeline_flow: int | float = Field(..., description="Pipeline flow sub-score (0-25)")
    follow_through: int | float = Field(..., description="Follow-through sub-score (0-25)")
    consensus_quality: int | float = Field(..., description="Consensus quality sub-score (0-25)")
    active_proposals: int | float = Field(..., description="Proposals not yet in a terminal phase")
    total_proposals: int | float = Field(..., description="Total proposals")
    active_agents: int | float = Field(..., description="Agents with recent contributions")
    proposal_velocity: int | float | None = Field(
        ..., description="Proposals resolved per day (trailing 7d), None if none resolved"
    )


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


def compute_gini(values: Sequence[float]) -> float:
    """Gini coefficient of the values, 0 (perfectly even) to ~1."""
    if len(values) <= 1:
        return 0.0
    ordered = sorted(values)
    total = sum(ordered)
    if total == 0:
        return 0.0
    n = len(ordered)
    weighted = sum((2 * (i + 1) - n - 1) * value for i, value in enumerate(ordered))
    return weighted / (n * total)


def participation_score(agent_stats: Sequence[AgentStats], proposals: Sequence[Proposal]) -> int:
    """Evenness of activity across active agents (0-25).

    Activity per agent is proposals authored plus reviews plus comments.
    A lone active agent scores 5; no active agents score 0.
    """
    active = [agent for agent in agent_stats if agent.is_active]
    if len(active) <= 1:
        return 0 if not active else 5

    authored = Counter(proposal.author for proposal in proposals)
    activities = [authored.get(agent.login, 0) + agent.reviews + agent.comments for agent in active]
    return int(round_half_up((1 - compute_gini(activities)) * SUB_SCORE_MAX))


def pipeline_flow_score(phase_counts: Counter[str], total: int) -> int:
    if total == 0:
        return 0
    advanced = total - phase_counts["discussion"]
    terminal = sum(phase_counts[phase] for phase in TERMINAL_PHASES)
    base = round_half_up(advanced / total * 15)
    completion_bonus = round_half_up(terminal / total * 10)
    return int(min(SUB_SCORE_MAX, base + completion_bonus))


def follow_through_score(phase_counts: Counter[str]) -> int:
    approved = phase_counts["implemented"] + phase_counts["ready-to-implement"]
    if approved == 0:
        return NEUTRAL_FOLLOW_THROUGH
    return int(round_half_up(phase_counts["implemented"] / approved * SUB_SCORE_MAX))


def consensus_quality_score(proposals: Sequence[Proposal]) -> int:
    """Vote turnout (0-10) + outcome diversity (0-5) + discussion depth (0-10).

    Outcome diversity rewards a healthy share (10%-40%) of rejected or
    inconclusive proposals among resolved ones; a pure rubber stamp scores 1.
    """
    if not proposals:
        return 0

    voted = [proposal.votes_summary for proposal in proposals if proposal.votes_summary]
    vote_score = 0.0
    if voted:
        average_votes = sum(v.thumbs_up + v.thumbs_down for v in voted) / len(voted)
        vote_score = min(10.0, round_half_up(average_votes / 4 * 10))

    terminal = [proposal for proposal in proposals if proposal.phase in TERMINAL_PHASES]
    diversity_score = 0
    if terminal:
        not_implemented = sum(1 for proposal in terminal if proposal.phase != "implemented")
        rate = not_implemented / len(terminal)
        if 0.1 <= rate <= 0.4:
            diversity_score = 5
        elif 0 < rate < 0.1 or 0.4 < rate <= 0.6:
            diversity_score = 3
        elif rate == 0:
            diversity_score = 1

    average_comments = sum(proposal.comment_count for proposal in proposals) / len(proposals)
    discussion_score = min(10.0, round_half_up(average_comments / 5 * 10))

    return int(min(SUB_SCORE_MAX, vote_score + diversity_score + discussion_score))


def proposal_velocity(
    proposals: Sequence[Proposal],
    reference: str,
    window_days: int = 7,
) -> float | None:
    """Resolved proposals per day over the trailing window ending at ``reference``.

    A resolved proposal counts when its most recent phase transition falls
    inside the window; transitions after the reference time do not count.
    Proposals without transitions never count.

    Returns:
        Velocity rounded to 2 decimals, or None when no proposal is resolved
        or the reference time is invalid.
    """
    resolved = [proposal for proposal in proposals if proposal.phase in TERMINAL_PHASES]
    if not resolved:
        return None

    reference_time = parse_timestamp(reference)
    if reference_time is None:
        logger.warning("Cannot compute proposal velocity without a valid reference time", reference=reference)
        return None
    window_start = reference_time - timedelta(days=window_days)

    recently_resolved = 0
    for proposal in resolved:
        if not proposal.phase_transitions:
            continue
        last_entered = parse_timestamp(proposal.phase_transitions[-1].entered_at)
        if last_entered is not None and window_start <= last_entered <= reference_time:
            recently_resolved += 1

    return round_half_up(recently_resolved / window_days, 2)


# ---------------------------------------------------------------------------
# Snapshot and history
# ---------------------------------------------------------------------------


def compute_snapshot(
    data: ActivitySnapshot,
    timestamp: str | None = None,
    settings: Settings | None = None,
) -> GovernanceSnapshot:
    """Compute the governance health snapshot for an activity snapshot.

    Args:
        data: The activity snapshot.
        timestamp: Optional snapshot time; defaults to the snapshot's
            generatedAt. It is also the reference time for velocity.
        settings: Optional override for the velocity window.

    Returns:
        The GovernanceSnapshot.
    """
    settings = settings or get_settings()
    proposals = data.proposals
    phase_counts = Counter(proposal.phase for proposal in proposals)
    reference = timestamp if timestamp is not None else data.generated_at

    participation = participation_score(data.agent_stats, proposals)
    pipeline_flow = pipeline_flow_score(phase_counts, len(proposals))
    follow_through = follow_through_score(phase_counts)
    consensus_quality = consensus_quality_score(proposals)

    raw_score = participation + pipeline_flow + follow_through + consensus_quality
    health_score = int(clamp(round_half_up(raw_score / 5) * 5, 0, 100))

    snapshot = GovernanceSnapshot(
        timestamp=reference,
        health_score=health_score,
        participation=participation,
        pipeline_flow=pipeline_flow,
        follow_through=follow_through,
        consensus_quality=consensus_quality,
        active_proposals=sum(phase_counts[phase] for phase in ACTIVE_PHASES),
        total_proposals=len(proposals),
        active_agents=sum(1 for agent in data.agent_stats if agent.is_active),
        proposal_velocity=proposal_velocity(proposals, reference, settings.velocity_window_days),
    )

    logger.debug(
        "Governance snapshot computed",
        timestamp=snapshot.timestamp,
        health_score=snapshot.health_score,
    )
    return snapshot


def append_snapshot(
    history: Sequence[GovernanceSnapshot],
    snapshot: GovernanceSnapshot,
    max_entries: int = MAX_HISTORY_ENTRIES,
) -> list[GovernanceSnapshot]:
    """Return a new history with ``snapshot`` appended, oldest entries dropped past the cap.

    The input sequence is never modified.
    """
    updated = [*history, snapshot]
    if len(updated) > max_entries:
        return updated[len(updated) - max_entries :]
    return updated
