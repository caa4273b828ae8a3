"""Tests for core models, temporal helpers and settings.

Covers:
- temporal: timestamp parsing, hour differences, median, half-up rounding
- models: camelCase input, repository tag resolution
- settings: environment overrides
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from colony_governance_engine.core.models import (
    ActivitySnapshot,
    Proposal,
    camel_case_keys,
    resolve_repo_tag,
)
from colony_governance_engine.core.temporal import (
    format_hours,
    hours_between,
    hours_since,
    isoformat_z,
    median,
    parse_timestamp,
    round_half_up,
)
from colony_governance_engine.settings import Settings


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def test_parse_timestamp_accepts_z_suffix_and_offsets() -> None:
    assert parse_timestamp("2026-02-10T00:00:00Z") == datetime(2026, 2, 10, tzinfo=UTC)
    assert parse_timestamp("2026-02-10T02:00:00+02:00") == datetime(2026, 2, 10, tzinfo=UTC)


def test_parse_timestamp_treats_naive_values_as_utc() -> None:
    assert parse_timestamp("2026-02-10T00:00:00") == datetime(2026, 2, 10, tzinfo=UTC)


@pytest.mark.parametrize("value", [None, "", "not-a-date", "2026-13-40T00:00:00Z"])
def test_parse_timestamp_returns_none_for_invalid_values(value: str | None) -> None:
    assert parse_timestamp(value) is None


def test_hours_between_rejects_reversed_and_invalid_ranges() -> None:
    start = datetime(2026, 2, 10, tzinfo=UTC)
    end = datetime(2026, 2, 10, 20, tzinfo=UTC)
    assert hours_between(start, end) == 20
    assert hours_between(end, start) is None
    assert hours_between(None, end) is None


def test_hours_since_is_floored_at_zero() -> None:
    now = datetime(2026, 2, 10, tzinfo=UTC)
    assert hours_since(datetime(2026, 2, 11, tzinfo=UTC), now) == 0.0


def test_isoformat_z_uses_trailing_z() -> None:
    assert isoformat_z(datetime(2026, 2, 10, tzinfo=UTC)) == "2026-02-10T00:00:00Z"


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def test_median_of_empty_list_is_none() -> None:
    assert median([]) is None


def test_median_of_two_values_is_their_average() -> None:
    assert median([10.0, 30.0]) == 20.0


@pytest.mark.parametrize(
    "values",
    [[5.0], [3.0, 1.0, 2.0], [100.0, -4.0, 7.5, 7.5], [0.1, 0.2, 0.3, 0.4, 1000.0]],
)
def test_median_lies_between_min_and_max(values: list[float]) -> None:
    result = median(values)
    assert result is not None
    assert min(values) <= result <= max(values)


def test_round_half_up_rounds_halves_upward() -> None:
    assert round_half_up(62.5) == 63
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(0.125, 2) == 0.13


def test_format_hours_drops_trailing_zero() -> None:
    assert format_hours(20) == "20h"
    assert format_hours(3.25) == "3.3h"
    assert format_hours(0.04) == "0h"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


def test_resolve_repo_tag_treats_blank_as_default() -> None:
    assert resolve_repo_tag(None, "hivemoot/colony") == "hivemoot/colony"
    assert resolve_repo_tag("  ", "hivemoot/colony") == "hivemoot/colony"
    assert resolve_repo_tag("hivemoot/hivemoot", "hivemoot/colony") == "hivemoot/hivemoot"


def test_camel_case_keys_renames_nested_field_names_only() -> None:
    payload = {
        "reliability_budget": {"remaining": 46},
        "incidents": [{"source_type": "pr", "age_hours": 2.0}],
        "incidents_by_category": {"ci-regression": 1},
    }
    assert camel_case_keys(payload) == {
        "reliabilityBudget": {"remaining": 46},
        "incidents": [{"sourceType": "pr", "ageHours": 2.0}],
        "incidentsByCategory": {"ci-regression": 1},
    }


def test_activity_snapshot_reads_camel_case_json() -> None:
    data = ActivitySnapshot.model_validate(
        {
            "generatedAt": "2026-02-10T00:00:00Z",
            "repository": {"owner": "hivemoot", "name": "colony", "url": "https://x"},
            "proposals": [
                {
                    "number": 7,
                    "title": "Adopt SLOs",
                    "author": "worker",
                    "createdAt": "2026-02-01T00:00:00Z",
                    "phase": "ready-to-implement",
                    "commentCount": 3,
                    "votesSummary": {"thumbsUp": 4, "thumbsDown": 1},
                    "phaseTransitions": [
                        {"phase": "discussion", "enteredAt": "2026-02-01T00:00:00Z"}
                    ],
                }
            ],
        }
    )
    proposal = data.proposals[0]
    assert data.default_repo == "hivemoot/colony"
    assert data.repository_tags == ["hivemoot/colony"]
    assert proposal.comment_count == 3
    assert proposal.votes_summary is not None
    assert proposal.votes_summary.thumbs_up == 4
    assert proposal.phase_transitions is not None
    assert proposal.phase_transitions[0].entered_at == "2026-02-01T00:00:00Z"


def test_unknown_phase_is_rejected_at_the_boundary() -> None:
    with pytest.raises(ValidationError):
        Proposal.model_validate(
            {
                "number": 1,
                "title": "x",
                "author": "a",
                "createdAt": "2026-02-01T00:00:00Z",
                "phase": "someday",
            }
        )


def test_models_are_immutable() -> None:
    proposal = Proposal(number=1, title="x", author="a", created_at="2026-02-01T00:00:00Z", phase="voting")
    with pytest.raises(ValidationError):
        proposal.phase = "implemented"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def test_settings_read_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COLONY_GOVERNANCE_STALE_HOURS", "12")
    monkeypatch.setenv("COLONY_GOVERNANCE_MAX_INCIDENTS", "3")
    settings = Settings()
    assert settings.stale_hours == 12
    assert settings.max_incidents == 3
    assert settings.cycle_time_healthy_hours == 48
