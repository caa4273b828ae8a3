"""Engine settings for colony-governance-engine.

Every threshold the engine compares against lives here instead of as a
free-floating literal, so callers (and tests) can inject boundary values.

Environment variable prefix: COLONY_GOVERNANCE_
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the governance operations engine.

    Defaults reproduce the published SLO table. Override through the
    environment (e.g. COLONY_GOVERNANCE_STALE_HOURS=12) or by passing an
    explicit instance to any engine function.
    """

    # -------------------------------------------------------------------------
    # SLO thresholds: healthy when <= the first bound, at-risk when <= the second
    # -------------------------------------------------------------------------

    cycle_time_healthy_hours: float = Field(
        default=48.0,
        description="Median discussion -> ready hours still considered healthy.",
    )
    cycle_time_at_risk_hours: float = Field(
        default=72.0,
        description="Median discussion -> ready hours above which the SLO is breached.",
    )
    lead_time_healthy_hours: float = Field(
        default=72.0,
        description="Median ready -> merged hours still considered healthy.",
    )
    lead_time_at_risk_hours: float = Field(
        default=120.0,
        description="Median ready -> merged hours above which the SLO is breached.",
    )
    blocked_ready_min_age_hours: float = Field(
        default=24.0,
        description="Age a ready-to-implement proposal must reach before it can count as blocked.",
    )
    blocked_ready_healthy_ratio: float = Field(
        default=0.2,
        description="Share of blocked ready proposals still considered healthy.",
    )
    blocked_ready_at_risk_ratio: float = Field(
        default=0.4,
        description="Share of blocked ready proposals above which the SLO is breached.",
    )
    freshness_healthy_hours: float = Field(
        default=24.0,
        description="Snapshot age in hours still considered fresh.",
    )
    freshness_at_risk_hours: float = Field(
        default=48.0,
        description="Snapshot age in hours above which the SLO is breached.",
    )
    discoverability_healthy_score: float = Field(
        default=80.0,
        description="Minimum external visibility score considered healthy.",
    )
    discoverability_at_risk_score: float = Field(
        default=60.0,
        description="Minimum external visibility score before the SLO is breached.",
    )

    # -------------------------------------------------------------------------
    # Incidents and reliability budget
    # -------------------------------------------------------------------------

    max_incidents: int = Field(
        default=10,
        description="Maximum number of open incidents reported, oldest first.",
    )
    budget_breach_penalty: int = Field(default=25, description="Budget spent per breached SLO.")
    budget_at_risk_penalty: int = Field(default=10, description="Budget spent per at-risk SLO.")
    budget_incident_penalty: int = Field(default=4, description="Budget spent per open incident.")
    budget_incident_penalty_cap: int = Field(
        default=20,
        description="Upper bound on the total budget spent on incidents.",
    )
    budget_low_threshold: int = Field(
        default=40,
        description="Remaining budget below which feature work should pause.",
    )

    # -------------------------------------------------------------------------
    # Bottlenecks and history
    # -------------------------------------------------------------------------

    stale_hours: float = Field(
        default=24.0,
        description="Hours without activity before a discussion or pull request is stale.",
    )
    velocity_window_days: int = Field(
        default=7,
        description="Trailing window used for proposal velocity (resolved per day).",
    )

    model_config = SettingsConfigDict(env_prefix="COLONY_GOVERNANCE_")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide default settings (read once from the environment).

    Returns:
        The cached Settings instance.
    """
    return Settings()
