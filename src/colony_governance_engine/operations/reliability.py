"""Reliability budget derived from SLO statuses and open incidents."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from colony_governance_engine.core.temporal import clamp
from colony_governance_engine.observability import get_logger
from colony_governance_engine.operations.slo import STATUS_AT_RISK, STATUS_BREACH
from colony_governance_engine.settings import Settings, get_settings

logger = get_logger(__name__)

RECOMMENDATION_LOW = (
    "Reliability budget is low. Pause net-new features and prioritize reliability fixes."
)
RECOMMENDATION_WATCH = (
    "Budget is healthy but watch at-risk SLOs and schedule preventative maintenance."
)
RECOMMENDATION_STRONG = (
    "Reliability budget is strong. Continue feature delivery while keeping incident response fast."
)


@dataclass(frozen=True)
class ReliabilityBudget:
    """Remaining reliability budget (0-100) with policy text and advice."""

    remaining: int
    policy: str
    recommendation: str


def budget_policy(settings: Settings) -> str:
    return (
        f"If reliability budget stays below {settings.budget_low_threshold} for 3 consecutive "
        "days, prioritize reliability fixes over net-new features."
    )


def compute_reliability_budget(
    slo_statuses: Iterable[str],
    incident_count: int,
    settings: Settings | None = None,
) -> ReliabilityBudget:
    """Spend the budget on breached SLOs, at-risk SLOs and open incidents.

    Args:
        slo_statuses: Status of every evaluated SLO.
        incident_count: Number of reported open incidents.
        settings: Optional override for penalties and the low-budget threshold.

    Returns:
        The budget, clamped to [0, 100], with the policy and a recommendation.
    """
    settings = settings or get_settings()
    statuses = list(slo_statuses)
    breach_count = statuses.count(STATUS_BREACH)
    at_risk_count = statuses.count(STATUS_AT_RISK)

    incident_penalty = min(
        settings.budget_incident_penalty_cap,
        incident_count * settings.budget_incident_penalty,
    )
    remaining = int(
        clamp(
            100
            - breach_count * settings.budget_breach_penalty
            - at_risk_count * settings.budget_at_risk_penalty
            - incident_penalty,
            0,
            100,
        )
    )

    if remaining < settings.budget_low_threshold or breach_count > 0:
        recommendation = RECOMMENDATION_LOW
    elif at_risk_count > 0:
        recommendation = RECOMMENDATION_WATCH
    else:
        recommendation = RECOMMENDATION_STRONG

    logger.debug(
        "Reliability budget computed",
        remaining=remaining,
        breach_count=breach_count,
        at_risk_count=at_risk_count,
        incident_count=incident_count,
    )
    return ReliabilityBudget(
        remaining=remaining,
        policy=budget_policy(settings),
        recommendation=recommendation,
    )
