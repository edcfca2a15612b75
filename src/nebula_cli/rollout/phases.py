"""Phase classification for staged manifest rollout.

Resources are applied in five ordered phases so that CRDs exist before the
custom resources that use them, controllers run before their providers,
and providers are healthy before anything is bound to them.

The policy table at the bottom decides, per phase, how hard an apply failure
is, what to wait for afterwards, and whether to retry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from . import readiness
from .manifests import Manifest

if TYPE_CHECKING:
    from ..cluster.transport import ClusterTransport
    from ..config import NebulaConfig


class Phase(Enum):
    """Rollout phases, in application order."""

    FOUNDATIONAL = 1  # CRDs, Namespaces
    CONTROLLERS = 2  # Core workload primitives and RBAC
    PROVIDERS = 3  # Crossplane provider packages
    PROVIDER_CONFIGS = 4  # Credentials bound to providers
    WORKLOADS = 5  # Everything else

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    def __lt__(self, other: Phase) -> bool:
        if not isinstance(other, Phase):
            return NotImplemented
        return self.value < other.value


class ApplyEffort(Enum):
    """How an apply failure is treated."""

    BEST_EFFORT = "best_effort"  # Log and continue
    MUST_SUCCEED = "must_succeed"  # Abort the rollout


FOUNDATIONAL_KINDS = frozenset({"CustomResourceDefinition", "Namespace"})

PROVIDER_API_GROUP = "pkg.crossplane.io"

CORE_API_VERSIONS = frozenset(
    {
        "v1",
        "apps/v1",
        "batch/v1",
        "rbac.authorization.k8s.io/v1",
        "networking.k8s.io/v1",
    }
)

CONTROLLER_KINDS = frozenset(
    {
        "ServiceAccount",
        "Secret",
        "ConfigMap",
        "ClusterRole",
        "ClusterRoleBinding",
        "Role",
        "RoleBinding",
        "Deployment",
        "StatefulSet",
        "DaemonSet",
        "Service",
        "Job",
    }
)


def is_provider(manifest: Manifest) -> bool:
    group = manifest.api_version.split("/", 1)[0]
    return manifest.kind == "Provider" and group.endswith(PROVIDER_API_GROUP)


def classify(manifest: Manifest) -> Phase:
    """Assign a manifest to its rollout phase. First matching rule wins."""
    if manifest.kind in FOUNDATIONAL_KINDS:
        return Phase.FOUNDATIONAL
    if is_provider(manifest):
        return Phase.PROVIDERS
    if manifest.kind == "ProviderConfig":
        return Phase.PROVIDER_CONFIGS
    if manifest.api_version in CORE_API_VERSIONS and manifest.kind in CONTROLLER_KINDS:
        return Phase.CONTROLLERS
    return Phase.WORKLOADS


def partition(manifests: Iterable[Manifest]) -> dict[Phase, list[Manifest]]:
    """Group manifests by phase. Every phase is present; input order is kept."""
    buckets: dict[Phase, list[Manifest]] = {phase: [] for phase in Phase}
    for manifest in manifests:
        buckets[classify(manifest)].append(manifest)
    return buckets


# -------------------------------------------------------------------------
# Policy table
# -------------------------------------------------------------------------

PredicateFactory = Callable[["ClusterTransport"], readiness.Predicate]


@dataclass(frozen=True)
class WaitSpec:
    """A readiness check to run after a phase is applied."""

    description: str
    predicate: PredicateFactory
    timeout: float
    interval: float


@dataclass(frozen=True)
class PhasePolicy:
    """How a single phase is applied."""

    phase: Phase
    effort: ApplyEffort
    waits: tuple[WaitSpec, ...] = ()
    retry_attempts: int = 0
    retry_delay: float = 0.0


def default_policies(config: NebulaConfig | None = None) -> list[PhasePolicy]:
    """Build the phase policy table from configuration."""
    if config is None:
        from ..config import NebulaConfig

        config = NebulaConfig()

    crds = WaitSpec(
        "CRDs established",
        readiness.crds_established,
        config.crd_timeout,
        config.crd_interval,
    )
    return [
        PhasePolicy(Phase.FOUNDATIONAL, ApplyEffort.BEST_EFFORT, waits=(crds,)),
        PhasePolicy(
            Phase.CONTROLLERS,
            ApplyEffort.BEST_EFFORT,
            waits=(
                WaitSpec(
                    "deployments ready",
                    readiness.deployments_ready,
                    config.controller_timeout,
                    config.controller_interval,
                ),
                # Controllers frequently install their own CRDs
                WaitSpec(
                    "controller CRDs established",
                    readiness.crds_established,
                    config.controller_crd_timeout,
                    config.crd_interval,
                ),
            ),
        ),
        PhasePolicy(
            Phase.PROVIDERS,
            ApplyEffort.MUST_SUCCEED,
            waits=(
                WaitSpec(
                    "providers healthy",
                    readiness.providers_healthy,
                    config.provider_timeout,
                    config.provider_interval,
                ),
            ),
        ),
        PhasePolicy(Phase.PROVIDER_CONFIGS, ApplyEffort.BEST_EFFORT),
        PhasePolicy(
            Phase.WORKLOADS,
            ApplyEffort.BEST_EFFORT,
            retry_attempts=config.workload_retry_attempts,
            retry_delay=config.workload_retry_delay,
        ),
    ]
