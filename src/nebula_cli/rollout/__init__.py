"""Staged manifest rollout.

Classifies manifests into dependency-ordered phases and applies them with
readiness gating between phases.
"""

from .applier import ApplyReport, PhasedApplier, PhaseReport
from .manifests import (
    Manifest,
    find_manifest_files,
    load_manifests,
    parse_manifest_text,
    write_manifests,
)
from .phases import (
    ApplyEffort,
    Phase,
    PhasePolicy,
    WaitSpec,
    classify,
    default_policies,
    partition,
)
from .readiness import (
    CancelToken,
    ReadinessWaiter,
    WaitOutcome,
    WaitResult,
    poll_until,
)

__all__ = [
    # Manifests
    "Manifest",
    "find_manifest_files",
    "load_manifests",
    "parse_manifest_text",
    "write_manifests",
    # Classification
    "Phase",
    "ApplyEffort",
    "PhasePolicy",
    "WaitSpec",
    "classify",
    "partition",
    "default_policies",
    # Readiness
    "CancelToken",
    "ReadinessWaiter",
    "WaitOutcome",
    "WaitResult",
    "poll_until",
    # Applier
    "PhasedApplier",
    "ApplyReport",
    "PhaseReport",
]
