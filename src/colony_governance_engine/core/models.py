"""Input entities for the governance engine.

The engine receives one immutable activity snapshot per run. All models are
frozen pydantic models that read the camelCase JSON produced by the data
collector while exposing snake_case attributes to Python callers.

Timestamps stay as ISO-8601 strings: a malformed timestamp must not reject
the whole snapshot, it is treated as "invalid" where it is compared (see
``core.temporal.parse_timestamp``).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProposalPhase = Literal[
    "discussion",
    "voting",
    "extended-voting",
    "ready-to-implement",
    "implemented",
    "rejected",
    "inconclusive",
]
PullRequestState = Literal["open", "closed", "merged"]
CommentType = Literal["issue", "pr", "review", "proposal"]

ACTIVE_PHASES: frozenset[str] = frozenset(
    {"discussion", "voting", "extended-voting", "ready-to-implement"}
)
TERMINAL_PHASES: frozenset[str] = frozenset({"implemented", "rejected", "inconclusive"})


class CamelModel(BaseModel):
    """Shared config: immutable, camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


def camel_case_keys(value: Any) -> Any:
    """Recursively rename snake_case dict keys to camelCase for JSON output.

    Keys without an underscore (ids, incident categories) are kept as is.
    """
    if isinstance(value, dict):
        return {
            (to_camel(key) if isinstance(key, str) and "_" in key else key): camel_case_keys(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [camel_case_keys(item) for item in value]
    return value


def resolve_repo_tag(repo: str | None, default_repo: str) -> str:
    """Return the repository tag an entity belongs to.

    An absent or blank ``repo`` means the caller's primary repository; it is
    never a wildcard.

    Args:
        repo: The entity's optional "owner/name" tag.
        default_repo: The primary repository tag.

    Returns:
        The effective "owner/name" tag.
    """
    if repo and repo.strip():
        return repo
    return default_repo


class PhaseTransition(CamelModel):
    """One entry into a governance phase. Proposals may re-enter a phase."""

    phase: str
    entered_at: str


class VotesSummary(CamelModel):
    thumbs_up: int = 0
    thumbs_down: int = 0


class Proposal(CamelModel):
    """A governance item moving through the proposal lifecycle.

    Attributes:
        number: Issue number, unique only within its repository.
        title: Proposal title.
        author: Login of the proposing agent.
        created_at: ISO-8601 creation timestamp.
        phase: Current lifecycle phase.
        comment_count: Number of discussion comments.
        votes_summary: Optional reaction tally from the voting phase.
        phase_transitions: Ordered record of every phase entry.
        repo: Optional "owner/name" tag; absent means the primary repository.
    """

    number: int
    title: str
    author: str
    created_at: str
    phase: ProposalPhase
    comment_count: int = 0
    votes_summary: VotesSummary | None = None
    phase_transitions: list[PhaseTransition] | None = None
    repo: str | None = None


class PullRequest(CamelModel):
    """An implementation artifact that may claim to close proposals."""

    number: int
    title: str
    body: str | None = None
    state: PullRequestState
    draft: bool = False
    author: str
    created_at: str
    closed_at: str | None = None
    merged_at: str | None = None
    repo: str | None = None


class Comment(CamelModel):
    """A timestamped remark on an issue, pull request, review or proposal."""

    id: int
    issue_or_pr_number: int
    type: CommentType
    author: str
    body: str
    created_at: str
    url: str
    repo: str | None = None


class AgentStats(CamelModel):
    """Aggregated contribution counters for one agent."""

    login: str
    commits: int = 0
    pull_requests_merged: int = 0
    issues_opened: int = 0
    reviews: int = 0
    comments: int = 0
    last_active_at: str | None = None

    @property
    def is_active(self) -> bool:
        return (
            self.commits > 0
            or self.pull_requests_merged > 0
            or self.reviews > 0
            or self.comments > 0
        )


class RepositoryInfo(CamelModel):
    owner: str
    name: str
    url: str = ""
    stars: int = 0
    forks: int = 0
    open_issues: int = 0

    @property
    def tag(self) -> str:
        return f"{self.owner}/{self.name}"


class VisibilityCheck(CamelModel):
    id: str
    label: str
    ok: bool
    details: str | None = None
    blocked_by_admin: bool = False


class ExternalVisibility(CamelModel):
    """Externally computed discoverability result (score 0-100)."""

    status: Literal["green", "yellow", "red"] = "yellow"
    score: float
    checks: list[VisibilityCheck] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)


class ActivitySnapshot(CamelModel):
    """The periodic activity snapshot the engine derives its report from.

    Attributes:
        generated_at: ISO-8601 time the snapshot was collected.
        repository: The primary repository; its tag is the default repo.
        repositories: All tracked repositories (includes the primary).
        agent_stats: Per-agent contribution counters.
        pull_requests: Pull requests across all tracked repositories.
        proposals: Governance proposals across all tracked repositories.
        comments: Comments across all tracked repositories.
        external_visibility: Optional discoverability score.
    """

    generated_at: str
    repository: RepositoryInfo
    repositories: list[RepositoryInfo] | None = None
    agent_stats: list[AgentStats] = Field(default_factory=list)
    pull_requests: list[PullRequest] = Field(default_factory=list)
    proposals: list[Proposal] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    external_visibility: ExternalVisibility | None = None

    @property
    def default_repo(self) -> str:
        return self.repository.tag

    @property
    def repository_tags(self) -> list[str]:
        if not self.repositories:
            return [self.default_repo]
        return [repo.tag for repo in self.repositories]
