"""Governance time machine: health snapshots and their versioned history.

Provides the composite health snapshot, the capped append-only history,
the persisted history artifact (with legacy-format tolerance), sha256
integrity digests and windowed replay of past health.
"""

from __future__ import annotations

from colony_governance_engine.time_machine.artifact import (
    GOVERNANCE_HISTORY_SCHEMA_VERSION,
    GovernanceHistoryArtifact,
    build_history_artifact,
    parse_history_artifact,
    serialize_for_integrity,
)
from colony_governance_engine.time_machine.integrity import (
    compute_integrity,
    is_integrity_valid,
    with_integrity,
)
from colony_governance_engine.time_machine.replay import (
    ReplayResult,
    ReplaySummary,
    replay_artifact,
    summarize_replay,
)
from colony_governance_engine.time_machine.snapshot import (
    MAX_HISTORY_ENTRIES,
    GovernanceSnapshot,
    append_snapshot,
    compute_snapshot,
)

__all__ = [
    "GOVERNANCE_HISTORY_SCHEMA_VERSION",
    "MAX_HISTORY_ENTRIES",
    "GovernanceHistoryArtifact",
    "GovernanceSnapshot",
    "ReplayResult",
    "ReplaySummary",
    "append_snapshot",
    "build_history_artifact",
    "compute_integrity",
    "compute_snapshot",
    "is_integrity_valid",
    "parse_history_artifact",
    "replay_artifact",
    "serialize_for_integrity",
    "summarize_replay",
    "with_integrity",
]
