"""Incident detection from ``BLOCKED:`` markers in comment text.

A comment containing ``BLOCKED: <marker>`` opens an incident on its issue or
pull request. A later comment on the same source containing ``VERIFIED`` or
``resolved`` closes every incident opened before it. Open incidents are
classified into a fixed taxonomy by keyword rules.

Classification rules (first match wins):
    merge-required                                  -> maintainer-gate
    admin-required, permission, push=false,
    forbidden, 403                                  -> permissions
    ci, check, test, lint, build                    -> ci-regression
    automation, workflow, action                    -> automation-failure
    anything else                                   -> governance-deadlock
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from colony_governance_engine.core.models import Comment
from colony_governance_engine.core.temporal import hours_since, parse_timestamp, round_one_decimal
from colony_governance_engine.observability import get_logger
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)

IncidentCategory = Literal[
    "permissions",
    "ci-regression",
    "automation-failure",
    "maintainer-gate",
    "governance-deadlock",
]
Severity = Literal["low", "medium", "high"]
SourceType = Literal["issue", "pr"]

INCIDENT_CATEGORIES: tuple[IncidentCategory, ...] = (
    "permissions",
    "ci-regression",
    "automation-failure",
    "maintainer-gate",
    "governance-deadlock",
)

BLOCKED_MARKER_PATTERN = re.compile(r"\bBLOCKED:\s*([a-z-]+)", re.IGNORECASE)
VERIFIED_PATTERN = re.compile(r"\bVERIFIED\b", re.IGNORECASE)
RESOLVED_PATTERN = re.compile(r"\bresolved\b", re.IGNORECASE)

SUMMARY_MAX_CHARS = 160

# Ordered: the first rule whose keywords appear in the text decides the category.
# "low" severity is never produced by the current taxonomy.
_CLASSIFICATION_RULES: list[tuple[IncidentCategory, tuple[str, ...]]] = [
    ("maintainer-gate", ("merge-required",)),
    ("permissions", ("admin-required", "permission", "push=false", "forbidden", "403")),
    ("ci-regression", ("ci", "check", "test", "lint", "build")),
    ("automation-failure", ("automation", "workflow", "action")),
]

_SEVERITY_BY_CATEGORY: dict[str, Severity] = {
    "permissions": "high",
    "maintainer-gate": "high",
    "governance-deadlock": "high",
    "ci-regression": "medium",
    "automation-failure": "medium",
}


@dataclass(frozen=True)
class GovernanceIncident:
    """An open operational incident detected from a BLOCKED marker.

    Attributes:
        id: Deterministic identifier, e.g. "issue-12-permissions".
        category: Taxonomy class.
        severity: Severity derived from the category.
        source_type: "pr" for pr/review comments, otherwise "issue".
        source_number: Issue or pull request number.
        source_url: Link to the originating comment.
        marker: Lower-cased text after "BLOCKED:".
        summary: First line of the comment, trimmed to 160 characters.
        detected_at: The comment's creation timestamp.
        age_hours: Hours since detection, one decimal.
        repo: Repository tag of the source, when known.
    """

    id: str
    category: IncidentCategory
    severity: Severity
    source_type: SourceType
    source_number: int
    source_url: str
    marker: str
    summary: str
    detected_at: str
    age_hours: float
    repo: str | None = None


def source_type_for_comment(comment: Comment) -> SourceType:
    return "pr" if comment.type in ("pr", "review") else "issue"


def source_scope_key(comment: Comment, default_repo: str | None = None) -> str:
    """Key identifying the issue or PR a comment belongs to.

    The repository suffix is only added for comments outside the primary
    repository, so single-repository ids stay short ("issue:12").
    """
    key = f"{source_type_for_comment(comment)}:{comment.issue_or_pr_number}"
    repo = comment.repo if comment.repo and comment.repo.strip() else None
    if repo is not None and repo != default_repo:
        key = f"{key}:{repo}"
    return key


def blocked_marker(body: str) -> str | None:
    match = BLOCKED_MARKER_PATTERN.search(body)
    return match.group(1).lower() if match else None


def is_resolution(body: str) -> bool:
    return bool(VERIFIED_PATTERN.search(body) or RESOLVED_PATTERN.search(body))


def classify_incident(marker: str, body: str) -> IncidentCategory:
    """Map a BLOCKED marker and its comment body to an incident category.

    Args:
        marker: Lower-cased marker text.
        body: Full comment body.

    Returns:
        The first matching category, or governance-deadlock.
    """
    text = f"{marker} {body}".lower()
    for category, keywords in _CLASSIFICATION_RULES:
        if any(keyword in text for keyword in keywords):
            return category
    return "governance-deadlock"


def severity_for_category(category: str) -> Severity:
    return _SEVERITY_BY_CATEGORY.get(category, "low")


def summarize_comment(body: str) -> str:
    return body.split("\n", 1)[0].strip()[:SUMMARY_MAX_CHARS]


def detect_incidents(
    comments: Iterable[Comment],
    now: datetime,
    default_repo: str | None = None,
    settings: Settings | None = None,
) -> list[GovernanceIncident]:
    """Collect open incidents from comment history.

    Args:
        comments: Comments from the activity snapshot, any order.
        now: Reference time for incident ages.
        default_repo: Primary repository tag; other repositories get a
            repository suffix in their incident ids.
        settings: Optional override for the incident cap.

    Returns:
        At most ``settings.max_incidents`` incidents, oldest first. Comments
        with unparsable timestamps are ignored.
    """
    settings = settings or get_settings()

    dated: list[tuple[datetime, Comment]] = []
    for comment in comments:
        created = parse_timestamp(comment.created_at)
        if created is None:
            logger.debug("Skipping comment with invalid timestamp", comment_id=comment.id)
            continue
        dated.append((created, comment))
    dated.sort(key=lambda entry: entry[0])

    latest_resolution: dict[str, datetime] = {}
    for created, comment in dated:
        if is_resolution(comment.body):
            latest_resolution[source_scope_key(comment, default_repo)] = created

    incidents: dict[str, GovernanceIncident] = {}
    for created, comment in reversed(dated):
        marker = blocked_marker(comment.body)
        if marker is None:
            continue

        scope_key = source_scope_key(comment, default_repo)
        resolved_at = latest_resolution.get(scope_key)
        if resolved_at is not None and resolved_at > created:
            continue

        category = classify_incident(marker, comment.body)
        incident_key = f"{scope_key}:{category}"
        if incident_key in incidents:
            continue

        incidents[incident_key] = GovernanceIncident(
            id=incident_key.replace(":", "-"),
            category=category,
            severity=severity_for_category(category),
            source_type=source_type_for_comment(comment),
            source_number=comment.issue_or_pr_number,
            source_url=comment.url,
            marker=marker,
            summary=summarize_comment(comment.body),
            detected_at=comment.created_at,
            age_hours=round_one_decimal(hours_since(created, now)),
            repo=comment.repo or default_repo,
        )

    ordered = sorted(incidents.values(), key=lambda incident: incident.age_hours, reverse=True)
    reported = ordered[: settings.max_incidents]

    logger.debug(
        "Incident detection complete",
        comments=len(dated),
        open_incidents=len(ordered),
        reported=len(reported),
    )
    return reported


def summarize_incidents_by_category(
    incidents: Iterable[GovernanceIncident],
) -> dict[str, int]:
    """Count incidents per category; every category is present, zero-filled."""
    counts = Counter(incident.category for incident in incidents)
    return {category: counts.get(category, 0) for category in INCIDENT_CATEGORIES}
