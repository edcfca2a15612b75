"""Bootstrap run state.

State lives only in memory for the duration of a run. Every stage is
idempotent, so a restarted run always starts again from INIT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..cluster.context import ClusterHandle
from ..shared.logging import get_logger

logger = get_logger(__name__)


class BootstrapStage(Enum):
    """Stages of the bootstrap, in order."""

    INIT = "init"
    LOCAL_CLUSTER_UP = "local_cluster_up"
    CREDENTIALS_SEEDED = "credentials_seeded"
    MANAGEMENT_PLANE_APPLIED = "management_plane_applied"
    PROVIDERS_HEALTHY = "providers_healthy"
    TARGET_CLUSTER_DISCOVERED = "target_cluster_discovered"
    TARGET_CLUSTER_READY = "target_cluster_ready"
    CONTEXT_SWITCHED = "context_switched"
    WORKLOAD_PLANE_APPLIED = "workload_plane_applied"
    GITOPS_SYNCED = "gitops_synced"
    DONE = "done"


STAGE_ORDER = list(BootstrapStage)


@dataclass
class BootstrapOptions:
    """User-facing bootstrap options."""

    project: str
    name: str = "nebula"
    credentials: str | None = None
    skip_kind: bool = False
    skip_credentials: bool = False
    skip_gke: bool = False
    app: str | None = None


@dataclass
class BootstrapState:
    """Current state of a bootstrap run."""

    management: ClusterHandle
    stage: BootstrapStage = BootstrapStage.INIT
    target: ClusterHandle | None = None
    warnings: list[str] = field(default_factory=list)
    completed: list[BootstrapStage] = field(default_factory=list)

    def advance(self, stage: BootstrapStage) -> None:
        """Record that `stage` has completed.

        Raises:
            ValueError: If stages would go backwards.
        """
        if STAGE_ORDER.index(stage) < STAGE_ORDER.index(self.stage):
            raise ValueError(f"Cannot move from {self.stage.value} back to {stage.value}")
        self.stage = stage
        self.completed.append(stage)
        logger.debug("bootstrap_stage", stage=stage.value)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
