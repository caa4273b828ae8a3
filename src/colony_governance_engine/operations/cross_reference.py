"""Cross-reference index from closing keywords in pull requests to issues.

A pull request "claims" an issue when its title or body contains a closing
keyword such as ``Fixes #12``. The index is keyed by ``(repo_tag, number)``
because different repositories reuse issue numbers; a PR only ever closes
issues in its own repository.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable

from colony_governance_engine.core.models import PullRequest, resolve_repo_tag

CLOSING_KEYWORD_PATTERN = re.compile(
    r"(?:fix(?:e[sd])?|close[sd]?|resolve[sd]?)\s+#(\d+)",
    re.IGNORECASE,
)

IssueKey = tuple[str, int]
CrossReferenceIndex = dict[IssueKey, list[PullRequest]]


def extract_closing_references(text: str) -> list[int]:
    """Return every distinct issue number referenced by a closing keyword.

    Args:
        text: Free text to scan (PR title and body).

    Returns:
        Issue numbers in order of first appearance.
    """
    numbers: list[int] = []
    for match in CLOSING_KEYWORD_PATTERN.finditer(text):
        number = int(match.group(1))
        if number not in numbers:
            numbers.append(number)
    return numbers


def index_pull_requests_by_issue(
    pull_requests: Iterable[PullRequest],
    default_repo: str,
    states: Collection[str] | None = None,
) -> CrossReferenceIndex:
    """Build the (repo, issue number) -> pull requests index.

    Args:
        pull_requests: Pull requests to scan.
        default_repo: Repository tag for pull requests without one.
        states: Optional subset of PR states to index (e.g. {"open"}).

    Returns:
        Mapping from issue key to the distinct PRs that claim to close it,
        in input order.
    """
    index: CrossReferenceIndex = {}

    for pr in pull_requests:
        if states is not None and pr.state not in states:
            continue

        pr_repo = resolve_repo_tag(pr.repo, default_repo)
        search_area = f"{pr.title} {pr.body or ''}"

        for issue_number in extract_closing_references(search_area):
            bucket = index.setdefault((pr_repo, issue_number), [])
            already_linked = any(
                entry.number == pr.number
                and resolve_repo_tag(entry.repo, default_repo) == pr_repo
                for entry in bucket
            )
            if not already_linked:
                bucket.append(pr)

    return index


def linked_pull_requests(
    index: CrossReferenceIndex,
    repo: str | None,
    number: int,
    default_repo: str,
) -> list[PullRequest]:
    """Look up the PRs linked to an issue or proposal.

    Args:
        index: Index built by ``index_pull_requests_by_issue``.
        repo: The issue's optional repository tag.
        number: The issue number.
        default_repo: Repository tag used when ``repo`` is absent.

    Returns:
        The linked PRs (empty when none).
    """
    return index.get((resolve_repo_tag(repo, default_repo), number), [])
