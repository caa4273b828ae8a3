"""Tests for the closing-keyword cross-reference index."""

from collections.abc import Callable

import pytest

from colony_governance_engine.core.models import PullRequest
from colony_governance_engine.operations.cross_reference import (
    extract_closing_references,
    index_pull_requests_by_issue,
    linked_pull_requests,
)

DEFAULT_REPO = "hivemoot/colony"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Fixes #12", [12]),
        ("fix #3 and closes #4", [3, 4]),
        ("Resolved #9, RESOLVES #10, close #11", [9, 10, 11]),
        ("closed #5 fixed #5", [5]),
        ("Refs #12", []),
        ("fixes#12", []),
    ],
)
def test_extract_closing_references(text: str, expected: list[int]) -> None:
    assert extract_closing_references(text) == expected


def test_index_scans_title_and_body(make_pull_request: Callable[..., PullRequest]) -> None:
    prs = [
        make_pull_request(number=60, title="feat: dashboard (fixes #1)"),
        make_pull_request(number=61, body="This PR closes #1 and resolves #2"),
    ]
    index = index_pull_requests_by_issue(prs, DEFAULT_REPO)

    assert [pr.number for pr in index[(DEFAULT_REPO, 1)]] == [60, 61]
    assert [pr.number for pr in index[(DEFAULT_REPO, 2)]] == [61]


def test_index_lists_each_pull_request_once_per_issue(
    make_pull_request: Callable[..., PullRequest],
) -> None:
    pr = make_pull_request(number=60, title="Fixes #1", body="Fixes #1\n\nCloses #1")
    index = index_pull_requests_by_issue([pr, pr], DEFAULT_REPO)

    assert len(index[(DEFAULT_REPO, 1)]) == 1


def test_index_filters_by_state(make_pull_request: Callable[..., PullRequest]) -> None:
    prs = [
        make_pull_request(number=60, state="open", body="Fixes #1"),
        make_pull_request(number=61, state="merged", body="Fixes #1"),
        make_pull_request(number=62, state="closed", body="Fixes #1"),
    ]
    index = index_pull_requests_by_issue(prs, DEFAULT_REPO, states={"open"})

    assert [pr.number for pr in index[(DEFAULT_REPO, 1)]] == [60]


def test_same_issue_number_in_different_repositories_never_collides(
    make_pull_request: Callable[..., PullRequest],
) -> None:
    prs = [
        make_pull_request(number=60, body="Fixes #1"),
        make_pull_request(number=60, body="Fixes #1", repo="hivemoot/hivemoot"),
    ]
    index = index_pull_requests_by_issue(prs, DEFAULT_REPO)

    local = linked_pull_requests(index, None, 1, DEFAULT_REPO)
    remote = linked_pull_requests(index, "hivemoot/hivemoot", 1, DEFAULT_REPO)
    assert len(local) == 1 and local[0].repo is None
    assert len(remote) == 1 and remote[0].repo == "hivemoot/hivemoot"


def test_linked_pull_requests_returns_empty_for_unknown_issue() -> None:
    assert linked_pull_requests({}, None, 99, DEFAULT_REPO) == []
