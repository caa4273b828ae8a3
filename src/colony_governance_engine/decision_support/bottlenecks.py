"""Governance bottleneck detection and suggested actions.

Bottleneck types, reported in this order when non-empty:
1. unclaimed-work: ready-to-implement proposals with no linked open PR
2. stalled-discussion: discussion proposals with no recent comments
3. competing-implementations: proposals with two or more linked open PRs
4. traceability-gap: implemented proposals with no linked merged PR
5. stale-pr: open, non-draft PRs with no recent activity

Staleness is measured against the snapshot's generatedAt, never the wall
clock. Proposal/PR/comment linkage is always scoped to one repository.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

from colony_governance_engine.core.models import (
    ActivitySnapshot,
    Comment,
    Proposal,
    PullRequest,
    resolve_repo_tag,
)
from colony_governance_engine.core.temporal import HOUR_SECONDS, parse_timestamp, round_half_up
from colony_governance_engine.observability import get_logger
from colony_governance_engine.operations.cross_reference import (
    CrossReferenceIndex,
    index_pull_requests_by_issue,
    linked_pull_requests,
)
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)

BottleneckType = Literal[
    "unclaimed-work",
    "stalled-discussion",
    "competing-implementations",
    "traceability-gap",
    "stale-pr",
]
ActionPriority = Literal["high", "medium", "low"]

BOTTLENECK_LABELS: dict[str, str] = {
    "unclaimed-work": "Unclaimed Work",
    "stalled-discussion": "Stalled Discussions",
    "competing-implementations": "Competing Implementations",
    "traceability-gap": "Traceability Gaps",
    "stale-pr": "Stale Pull Requests",
}

ACTION_PRIORITY: dict[str, ActionPriority] = {
    "competing-implementations": "high",
    "stale-pr": "high",
    "stalled-discussion": "medium",
    "traceability-gap": "medium",
    "unclaimed-work": "low",
}

_PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}

_ACTION_TEMPLATES: dict[str, str] = {
    "competing-implementations": (
        '#{number} "{title}" has {detail} - coordinate to avoid wasted effort'
    ),
    "stale-pr": 'PR #{number} "{title}" is stale ({detail}) - needs review or update',
    "stalled-discussion": (
        '#{number} "{title}" discussion stalled ({detail}) - add feedback or summarize for voting'
    ),
    "traceability-gap": (
        '#{number} "{title}" is implemented but missing a linked PR - fix metadata'
    ),
    "unclaimed-work": (
        '#{number} "{title}" is approved but has no implementation PR - claim it'
    ),
}

_DISCUSSION_COMMENT_TYPES = frozenset({"issue", "proposal"})
_PR_COMMENT_TYPES = frozenset({"pr", "review"})

ActivityKey = tuple[str, int]


@dataclass(frozen=True)
class BottleneckItem:
    """One proposal or PR caught by a detector.

    Attributes:
        number: Proposal or PR number.
        title: Its title.
        detail: Optional context such as "2 open PRs: #60, #61".
        repo: Repository tag the number belongs to.
    """

    number: int
    title: str
    detail: str | None = None
    repo: str | None = None


@dataclass(frozen=True)
class Bottleneck:
    type: BottleneckType
    label: str
    items: list[BottleneckItem] = field(default_factory=list)


@dataclass(frozen=True)
class SuggestedAction:
    """A ranked next step derived from a bottleneck item."""

    priority: ActionPriority
    description: str
    issue_number: int
    repo: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _latest_comment_times(
    comments: Iterable[Comment],
    comment_types: frozenset[str],
    default_repo: str,
) -> dict[ActivityKey, datetime]:
    """Latest valid comment time per (repo, number) for the given comment types."""
    latest: dict[ActivityKey, datetime] = {}
    for comment in comments:
        if comment.type not in comment_types:
            continue
        created = parse_timestamp(comment.created_at)
        if created is None:
            continue
        key = (resolve_repo_tag(comment.repo, default_repo), comment.issue_or_pr_number)
        current = latest.get(key)
        if current is None or created > current:
            latest[key] = created
    return latest


def _inactive_detail(now: datetime, last_activity: datetime, suffix: str) -> str:
    """Render idle time as hours, or days once it reaches 48h."""
    hours = int(round_half_up((now - last_activity).total_seconds() / HOUR_SECONDS))
    if hours >= 48:
        return f"{int(round_half_up(hours / 24))}d {suffix}"
    return f"{hours}h {suffix}"


def _stale_since(
    created_at: str,
    key: ActivityKey,
    latest_activity: dict[ActivityKey, datetime],
    cutoff: datetime,
) -> datetime | None:
    """Return the last activity time when both creation and activity precede the cutoff."""
    created = parse_timestamp(created_at)
    if created is None or created > cutoff:
        return None
    last_activity = latest_activity.get(key, created)
    if last_activity > cutoff:
        return None
    return last_activity


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------


def find_unclaimed_work(
    proposals: Iterable[Proposal],
    open_index: CrossReferenceIndex,
    default_repo: str,
) -> list[BottleneckItem]:
    return [
        BottleneckItem(
            number=proposal.number,
            title=proposal.title,
            repo=resolve_repo_tag(proposal.repo, default_repo),
        )
        for proposal in proposals
        if proposal.phase == "ready-to-implement"
        and not linked_pull_requests(open_index, proposal.repo, proposal.number, default_repo)
    ]


def find_stalled_discussions(
    proposals: Iterable[Proposal],
    comments: Iterable[Comment],
    now: datetime,
    default_repo: str,
    stale_hours: float,
) -> list[BottleneckItem]:
    """Discussion proposals whose latest issue/proposal comment is older than the cutoff.

    Proposals created after the cutoff have not had time to stall and are skipped.
    """
    cutoff = now - timedelta(hours=stale_hours)
    latest_comment = _latest_comment_times(comments, _DISCUSSION_COMMENT_TYPES, default_repo)
    items: list[BottleneckItem] = []

    for proposal in proposals:
        if proposal.phase != "discussion":
            continue
        repo = resolve_repo_tag(proposal.repo, default_repo)
        last_activity = _stale_since(
            proposal.created_at, (repo, proposal.number), latest_comment, cutoff
        )
        if last_activity is None:
            continue
        items.append(
            BottleneckItem(
                number=proposal.number,
                title=proposal.title,
                detail=_inactive_detail(now, last_activity, "since last comment"),
                repo=repo,
            )
        )

    return items


def find_competing_implementations(
    proposals: Iterable[Proposal],
    open_index: CrossReferenceIndex,
    default_repo: str,
) -> list[BottleneckItem]:
    items: list[BottleneckItem] = []
    for proposal in proposals:
        prs = linked_pull_requests(open_index, proposal.repo, proposal.number, default_repo)
        if len(prs) < 2:
            continue
        pr_numbers = ", ".join(f"#{pr.number}" for pr in prs)
        items.append(
            BottleneckItem(
                number=proposal.number,
                title=proposal.title,
                detail=f"{len(prs)} open PRs: {pr_numbers}",
                repo=resolve_repo_tag(proposal.repo, default_repo),
            )
        )
    return items


def find_traceability_gaps(
    proposals: Iterable[Proposal],
    full_index: CrossReferenceIndex,
    default_repo: str,
) -> list[BottleneckItem]:
    return [
        BottleneckItem(
            number=proposal.number,
            title=proposal.title,
            detail="No merged PR links to this issue",
            repo=resolve_repo_tag(proposal.repo, default_repo),
        )
        for proposal in proposals
        if proposal.phase == "implemented"
        and not any(
            pr.state == "merged"
            for pr in linked_pull_requests(full_index, proposal.repo, proposal.number, default_repo)
        )
    ]


def find_stale_pull_requests(
    pull_requests: Iterable[PullRequest],
    comments: Iterable[Comment],
    now: datetime,
    default_repo: str,
    stale_hours: float,
) -> list[BottleneckItem]:
    """Open, non-draft PRs with no pr/review comment since the cutoff."""
    cutoff = now - timedelta(hours=stale_hours)
    latest_activity = _latest_comment_times(comments, _PR_COMMENT_TYPES, default_repo)
    items: list[BottleneckItem] = []

    for pr in pull_requests:
        if pr.state != "open" or pr.draft:
            continue
        repo = resolve_repo_tag(pr.repo, default_repo)
        last_activity = _stale_since(pr.created_at, (repo, pr.number), latest_activity, cutoff)
        if last_activity is None:
            continue
        items.append(
            BottleneckItem(
                number=pr.number,
                title=pr.title,
                detail=_inactive_detail(now, last_activity, "since activity"),
                repo=repo,
            )
        )

    return items


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_bottlenecks(
    data: ActivitySnapshot,
    settings: Settings | None = None,
) -> list[Bottleneck]:
    """Detect governance bottlenecks in an activity snapshot.

    Args:
        data: The activity snapshot; its generatedAt is the reference time.
        settings: Optional override for the staleness threshold.

    Returns:
        Non-empty bottleneck groups in fixed type order. Empty when the
        snapshot's generatedAt is not a valid timestamp.
    """
    settings = settings or get_settings()
    now = parse_timestamp(data.generated_at)
    if now is None:
        logger.warning(
            "Cannot detect bottlenecks without a valid generatedAt",
            generated_at=data.generated_at,
        )
        return []

    default_repo = data.default_repo
    open_index = index_pull_requests_by_issue(data.pull_requests, default_repo, states={"open"})
    full_index = index_pull_requests_by_issue(data.pull_requests, default_repo)

    detected: list[tuple[BottleneckType, list[BottleneckItem]]] = [
        ("unclaimed-work", find_unclaimed_work(data.proposals, open_index, default_repo)),
        (
            "stalled-discussion",
            find_stalled_discussions(
                data.proposals, data.comments, now, default_repo, settings.stale_hours
            ),
        ),
        (
            "competing-implementations",
            find_competing_implementations(data.proposals, open_index, default_repo),
        ),
        ("traceability-gap", find_traceability_gaps(data.proposals, full_index, default_repo)),
        (
            "stale-pr",
            find_stale_pull_requests(
                data.pull_requests, data.comments, now, default_repo, settings.stale_hours
            ),
        ),
    ]

    bottlenecks = [
        Bottleneck(type=kind, label=BOTTLENECK_LABELS[kind], items=items)
        for kind, items in detected
        if items
    ]

    logger.debug(
        "Bottleneck detection complete",
        repository=default_repo,
        counts={bottleneck.type: len(bottleneck.items) for bottleneck in bottlenecks},
    )
    return bottlenecks


def suggest_actions(bottlenecks: Iterable[Bottleneck]) -> list[SuggestedAction]:
    """Turn bottlenecks into a flat, priority-ordered action list.

    Priority: high for competing implementations and stale PRs, medium for
    stalled discussions and traceability gaps, low for unclaimed work.
    Items keep their detection order within a priority.

    Args:
        bottlenecks: Output of ``detect_bottlenecks``.

    Returns:
        Suggested actions, high priority first.
    """
    actions: list[SuggestedAction] = []
    for bottleneck in bottlenecks:
        template = _ACTION_TEMPLATES[bottleneck.type]
        for item in bottleneck.items:
            actions.append(
                SuggestedAction(
                    priority=ACTION_PRIORITY[bottleneck.type],
                    description=template.format(
                        number=item.number,
                        title=item.title,
                        detail=item.detail,
                    ),
                    issue_number=item.number,
                    repo=item.repo,
                )
            )

    return sorted(actions, key=lambda action: _PRIORITY_ORDER[action.priority])
