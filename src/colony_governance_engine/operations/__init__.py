"""Governance operations: SLOs, incidents and the reliability budget.

Modules:
- cross_reference: closing-keyword index from pull requests to issues
- slo: the five SLO checks and their aggregation
- incidents: BLOCKED-marker incident detection and classification
- reliability: reliability budget and recommendation
- engine: report orchestration
"""

from colony_governance_engine.operations.cross_reference import (
    extract_closing_references,
    index_pull_requests_by_issue,
    linked_pull_requests,
)
from colony_governance_engine.operations.engine import (
    GovernanceOpsEngine,
    GovernanceOpsReport,
    compute_governance_ops,
)
from colony_governance_engine.operations.incidents import (
    GovernanceIncident,
    classify_incident,
    detect_incidents,
    summarize_incidents_by_category,
)
from colony_governance_engine.operations.reliability import (
    ReliabilityBudget,
    compute_reliability_budget,
)
from colony_governance_engine.operations.slo import (
    GovernanceSLOCheck,
    aggregate_score,
    aggregate_status,
    evaluate_slos,
)

__all__ = [
    "GovernanceIncident",
    "GovernanceOpsEngine",
    "GovernanceOpsReport",
    "GovernanceSLOCheck",
    "ReliabilityBudget",
    "aggregate_score",
    "aggregate_status",
    "classify_incident",
    "compute_governance_ops",
    "compute_reliability_budget",
    "detect_incidents",
    "evaluate_slos",
    "extract_closing_references",
    "index_pull_requests_by_issue",
    "linked_pull_requests",
    "summarize_incidents_by_category",
]
