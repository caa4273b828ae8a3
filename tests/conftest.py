"""Test fixtures for colony-governance-engine.

Provides:
- settings: default Settings, independent of the process environment
- make_proposal / make_pull_request / make_comment / make_agent: entity builders
- make_activity: ActivitySnapshot builder anchored at GENERATED_AT
- iso: helper fixture rendering an offset (hours) from GENERATED_AT as ISO-8601
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from colony_governance_engine.core.models import (
    ActivitySnapshot,
    AgentStats,
    Comment,
    ExternalVisibility,
    PhaseTransition,
    Proposal,
    PullRequest,
    RepositoryInfo,
    VotesSummary,
)
from colony_governance_engine.settings import Settings

GENERATED_AT = "2026-02-10T00:00:00Z"
BASE_TIME = datetime(2026, 2, 10, tzinfo=UTC)
DEFAULT_REPO = "hivemoot/colony"


def at(hours: float) -> str:
    """ISO-8601 timestamp ``hours`` after (negative: before) GENERATED_AT."""
    return (BASE_TIME + timedelta(hours=hours)).isoformat().replace("+00:00", "Z")


@pytest.fixture()
def settings() -> Settings:
    """Return default settings that ignore COLONY_GOVERNANCE_* variables.

    Returns:
        A Settings instance built from code defaults only.
    """
    return Settings.model_construct()


@pytest.fixture()
def iso() -> Callable[[float], str]:
    return at


@pytest.fixture()
def make_proposal() -> Callable[..., Proposal]:
    """Factory for proposals; ``transitions`` is a list of (phase, hours) pairs."""

    def _make(
        number: int = 1,
        phase: str = "discussion",
        created_hours: float = -100,
        transitions: list[tuple[str, float]] | None = None,
        title: str | None = None,
        author: str = "worker",
        comment_count: int = 0,
        votes: tuple[int, int] | None = None,
        repo: str | None = None,
    ) -> Proposal:
        return Proposal(
            number=number,
            title=title or f"Proposal {number}",
            author=author,
            created_at=at(created_hours),
            phase=phase,
            comment_count=comment_count,
            votes_summary=VotesSummary(thumbs_up=votes[0], thumbs_down=votes[1]) if votes else None,
            phase_transitions=(
                [PhaseTransition(phase=p, entered_at=at(h)) for p, h in transitions]
                if transitions is not None
                else None
            ),
            repo=repo,
        )

    return _make


@pytest.fixture()
def make_pull_request() -> Callable[..., PullRequest]:
    def _make(
        number: int = 100,
        state: str = "open",
        body: str | None = None,
        title: str | None = None,
        created_hours: float = -10,
        merged_hours: float | None = None,
        draft: bool = False,
        author: str = "builder",
        repo: str | None = None,
    ) -> PullRequest:
        return PullRequest(
            number=number,
            title=title or f"PR {number}",
            body=body,
            state=state,
            draft=draft,
            author=author,
            created_at=at(created_hours),
            merged_at=at(merged_hours) if merged_hours is not None else None,
            repo=repo,
        )

    return _make


@pytest.fixture()
def make_comment() -> Callable[..., Comment]:
    counter = {"next_id": 1}

    def _make(
        body: str,
        hours: float = -1,
        number: int = 1,
        type: str = "issue",
        repo: str | None = None,
        created_at: str | None = None,
    ) -> Comment:
        comment_id = counter["next_id"]
        counter["next_id"] += 1
        return Comment(
            id=comment_id,
            issue_or_pr_number=number,
            type=type,
            author="reviewer",
            body=body,
            created_at=created_at if created_at is not None else at(hours),
            url=f"https://github.com/{repo or DEFAULT_REPO}/issues/{number}#comment-{comment_id}",
            repo=repo,
        )

    return _make


@pytest.fixture()
def make_agent() -> Callable[..., AgentStats]:
    def _make(login: str, reviews: int = 0, comments: int = 0, commits: int = 0) -> AgentStats:
        return AgentStats(login=login, reviews=reviews, comments=comments, commits=commits)

    return _make


@pytest.fixture()
def make_activity() -> Callable[..., ActivitySnapshot]:
    """Factory for activity snapshots of the hivemoot/colony repository."""

    def _make(
        proposals: list[Proposal] | None = None,
        pull_requests: list[PullRequest] | None = None,
        comments: list[Comment] | None = None,
        agent_stats: list[AgentStats] | None = None,
        visibility_score: float | None = 90,
        generated_at: str = GENERATED_AT,
        **extra: Any,
    ) -> ActivitySnapshot:
        return ActivitySnapshot(
            generated_at=generated_at,
            repository=RepositoryInfo(
                owner="hivemoot",
                name="colony",
                url="https://github.com/hivemoot/colony",
            ),
            agent_stats=agent_stats or [],
            pull_requests=pull_requests or [],
            proposals=proposals or [],
            comments=comments or [],
            external_visibility=(
                ExternalVisibility(status="green", score=visibility_score)
                if visibility_score is not None
                else None
            ),
            **extra,
        )

    return _make
