"""Decision support: governance bottlenecks and suggested actions."""

from colony_governance_engine.decision_support.bottlenecks import (
    Bottleneck,
    BottleneckItem,
    SuggestedAction,
    detect_bottlenecks,
    suggest_actions,
)

__all__ = [
    "Bottleneck",
    "BottleneckItem",
    "SuggestedAction",
    "detect_bottlenecks",
    "suggest_actions",
]
