"""Versioned governance history artifact: build, parse and canonical form.

The persisted artifact wraps the snapshot history with provenance (who
generated it, from which repositories and commit), a completeness report
and an optional integrity digest. Two on-disk formats are accepted:

- schema v1+: the full artifact object
- schema v0: a bare JSON array of snapshots written by older generators
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import Field, ValidationError

from colony_governance_engine.core.models import CamelModel
from colony_governance_engine.observability import get_logger
from colony_governance_engine.time_machine.snapshot import GovernanceSnapshot

logger = get_logger(__name__)

GOVERNANCE_HISTORY_SCHEMA_VERSION = 1
LEGACY_SCHEMA_VERSION = 0
LEGACY_GENERATED_BY = "legacy-governance-history"
LEGACY_PERMISSION_GAP = "Legacy history format: provenance metadata unavailable"
EPOCH_ISO = "1970-01-01T00:00:00.000Z"
UNKNOWN = "unknown"

CompletenessStatus = Literal["complete", "partial"]


class HistoryProvenance(CamelModel):
    repositories: list[str] = Field(default_factory=list)
    generated_by: str
    generator_version: str
    source_commit_sha: str | None = None


class HistoryCompleteness(CamelModel):
    """Whether every tracked repository contributed complete data."""

    status: CompletenessStatus
    missing_repositories: list[str] = Field(default_factory=list)
    permission_gaps: list[str] = Field(default_factory=list)
    api_partials: list[str] = Field(default_factory=list)


class HistoryIntegrity(CamelModel):
    algorithm: Literal["sha256"] = "sha256"
    digest: str


class GovernanceHistoryArtifact(CamelModel):
    """The persisted governance history.

    Attributes:
        schema_version: Artifact schema version; 0 marks a converted legacy array.
        generated_at: ISO-8601 time the artifact was written.
        snapshots: Snapshot history, oldest first.
        provenance: Generator and source metadata.
        completeness: Data-gap report.
        integrity: Optional sha256 digest of the canonical serialization.
    """

    schema_version: int = Field(..., description="Artifact schema version")
    generated_at: str = Field(..., description="ISO-8601 generation time")
    snapshots: list[GovernanceSnapshot] = Field(default_factory=list)
    provenance: HistoryProvenance
    completeness: HistoryCompleteness
    integrity: HistoryIntegrity | None = None

    def to_json_dict(self) -> dict[str, Any]:
        """Render the artifact as camelCase JSON-compatible data."""
        return self.model_dump(mode="json", by_alias=True)


def build_history_artifact(
    generated_at: str,
    snapshots: Sequence[GovernanceSnapshot],
    repositories: Sequence[str],
    generated_by: str,
    generator_version: str,
    source_commit_sha: str | None = None,
    missing_repositories: Sequence[str] = (),
    permission_gaps: Sequence[str] = (),
    api_partials: Sequence[str] = (),
    schema_version: int = GOVERNANCE_HISTORY_SCHEMA_VERSION,
    integrity: HistoryIntegrity | None = None,
) -> GovernanceHistoryArtifact:
    """Wrap a snapshot history in a versioned artifact.

    Args:
        generated_at: ISO-8601 generation time.
        snapshots: Snapshot history, oldest first.
        repositories: Repository tags the history was computed from.
        generated_by: Name of the generating tool.
        generator_version: Version of the generating tool.
        source_commit_sha: Optional commit the generator ran at.
        missing_repositories: Tracked repositories that could not be read.
        permission_gaps: Data withheld for lack of permissions.
        api_partials: API responses known to be truncated.
        schema_version: Artifact schema version.
        integrity: Optional precomputed digest.

    Returns:
        The artifact; completeness is "partial" when any gap list is non-empty.
    """
    has_gaps = bool(missing_repositories or permission_gaps or api_partials)
    return GovernanceHistoryArtifact(
        schema_version=schema_version,
        generated_at=generated_at,
        snapshots=list(snapshots),
        provenance=HistoryProvenance(
            repositories=list(repositories),
            generated_by=generated_by,
            generator_version=generator_version,
            source_commit_sha=source_commit_sha,
        ),
        completeness=HistoryCompleteness(
            status="partial" if has_gaps else "complete",
            missing_repositories=list(missing_repositories),
            permission_gaps=list(permission_gaps),
            api_partials=list(api_partials),
        ),
        integrity=integrity,
    )


def serialize_for_integrity(artifact: GovernanceHistoryArtifact) -> str:
    """Canonical JSON of the artifact without its integrity block.

    Keys are camelCase in declaration order (schemaVersion, generatedAt,
    snapshots, provenance, completeness; nested models likewise) with
    compact separators. Digests written by earlier generators use the
    same form, so the field order of the models is part of the format.
    """
    payload = artifact.model_dump(mode="json", by_alias=True, exclude={"integrity"})
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_snapshots(value: Any) -> list[GovernanceSnapshot] | None:
    """Strictly validate a list of snapshots; any invalid entry rejects the list."""
    if not isinstance(value, list):
        return None
    snapshots: list[GovernanceSnapshot] = []
    for entry in value:
        if not isinstance(entry, dict):
            return None
        try:
            snapshots.append(GovernanceSnapshot.model_validate(entry, strict=True))
        except ValidationError as exc:
            logger.debug("Rejecting invalid history snapshot", errors=exc.error_count())
            return None
    return snapshots


def _read_string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str)]


def _read_string(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _last_timestamp(snapshots: Sequence[GovernanceSnapshot]) -> str:
    return snapshots[-1].timestamp if snapshots else EPOCH_ISO


def _parse_integrity(value: Any) -> HistoryIntegrity | None:
    if not isinstance(value, dict):
        return None
    if value.get("algorithm") != "sha256" or not isinstance(value.get("digest"), str):
        return None
    return HistoryIntegrity(algorithm="sha256", digest=value["digest"])


def parse_history_artifact(raw: Any) -> GovernanceHistoryArtifact | None:
    """Load a history artifact from decoded JSON, accepting both formats.

    A bare array of snapshots is converted to a schema v0 artifact marked
    partial. An object must carry a valid ``snapshots`` array; missing
    provenance and completeness fields get tolerant defaults, an explicit
    valid ``completeness.status`` wins over the derived one, and an
    integrity block is kept only when it is a sha256 digest string.

    Args:
        raw: Decoded JSON value.

    Returns:
        The artifact, or None when the value is not a recognised history.
    """
    legacy_snapshots = _parse_snapshots(raw)
    if legacy_snapshots is not None:
        return build_history_artifact(
            generated_at=_last_timestamp(legacy_snapshots),
            snapshots=legacy_snapshots,
            repositories=[],
            generated_by=LEGACY_GENERATED_BY,
            generator_version=UNKNOWN,
            permission_gaps=[LEGACY_PERMISSION_GAP],
            schema_version=LEGACY_SCHEMA_VERSION,
        )

    if not isinstance(raw, dict):
        logger.warning("Unrecognised governance history shape", type=type(raw).__name__)
        return None

    snapshots = _parse_snapshots(raw.get("snapshots"))
    if snapshots is None:
        logger.warning("Governance history has no valid snapshots array")
        return None

    provenance = raw.get("provenance") if isinstance(raw.get("provenance"), dict) else {}
    completeness = raw.get("completeness") if isinstance(raw.get("completeness"), dict) else {}

    schema_version = raw.get("schemaVersion")
    if not isinstance(schema_version, int) or isinstance(schema_version, bool):
        schema_version = GOVERNANCE_HISTORY_SCHEMA_VERSION

    source_commit_sha = provenance.get("sourceCommitSha")
    artifact = build_history_artifact(
        generated_at=_read_string(raw.get("generatedAt"), _last_timestamp(snapshots)),
        snapshots=snapshots,
        repositories=_read_string_list(provenance.get("repositories")),
        generated_by=_read_string(provenance.get("generatedBy"), UNKNOWN),
        generator_version=_read_string(provenance.get("generatorVersion"), UNKNOWN),
        source_commit_sha=source_commit_sha if isinstance(source_commit_sha, str) else None,
        missing_repositories=_read_string_list(completeness.get("missingRepositories")),
        permission_gaps=_read_string_list(completeness.get("permissionGaps")),
        api_partials=_read_string_list(completeness.get("apiPartials")),
        schema_version=schema_version,
        integrity=_parse_integrity(raw.get("integrity")),
    )

    explicit_status = completeness.get("status")
    if explicit_status in ("complete", "partial"):
        artifact = artifact.model_copy(
            update={
                "completeness": artifact.completeness.model_copy(update={"status": explicit_status})
            }
        )
    return artifact
