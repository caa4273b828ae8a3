"""sha256 integrity digests for governance history artifacts."""

from __future__ import annotations

import hashlib
import hmac

from colony_governance_engine.observability import get_logger
from colony_governance_engine.time_machine.artifact import (
    GovernanceHistoryArtifact,
    HistoryIntegrity,
    serialize_for_integrity,
)

logger = get_logger(__name__)


def compute_integrity(artifact: GovernanceHistoryArtifact) -> HistoryIntegrity:
    """Digest the canonical serialization; any existing integrity block is ignored."""
    digest = hashlib.sha256(serialize_for_integrity(artifact).encode("utf-8")).hexdigest()
    return HistoryIntegrity(algorithm="sha256", digest=digest)


def with_integrity(artifact: GovernanceHistoryArtifact) -> GovernanceHistoryArtifact:
    """Return a copy of the artifact stamped with its current digest."""
    return artifact.model_copy(update={"integrity": compute_integrity(artifact)})


def is_integrity_valid(artifact: GovernanceHistoryArtifact) -> bool:
    """Check the stored digest against the artifact's content.

    Returns:
        False when there is no integrity block or the digest does not match.
    """
    if artifact.integrity is None or artifact.integrity.algorithm != "sha256":
        return False
    expected = compute_integrity(artifact).digest
    valid = hmac.compare_digest(expected, artifact.integrity.digest)
    if not valid:
        logger.warning(
            "Governance history integrity mismatch",
            generated_at=artifact.generated_at,
        )
    return valid
