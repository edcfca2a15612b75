"""Target cluster discovery.

Crossplane creates the GKE cluster from a claim, so nebula does not know the
cluster's name or location up front. It reads them back from the managed
resource once Crossplane has created it.
"""

from __future__ import annotations

from typing import Any

from ..cluster.context import ClusterHandle
from ..cluster.transport import ClusterTransport
from ..errors import DiscoveryTimeoutError
from ..rollout.readiness import ReadinessWaiter
from ..shared.logging import get_logger

logger = get_logger(__name__)

MANAGED_CLUSTER_RESOURCE = "cluster.container.gcp.upbound.io"


def handle_from_item(item: dict[str, Any], default_project: str = "") -> ClusterHandle | None:
    """Build a ClusterHandle from a managed cluster resource.

    Returns None if the item has no name yet.
    """
    name = (item.get("metadata") or {}).get("name") or ""
    if not name:
        return None
    for_provider = (item.get("spec") or {}).get("forProvider") or {}
    return ClusterHandle(
        name=name,
        location=for_provider.get("location") or "",
        project=for_provider.get("project") or default_project,
    )


def managed_cluster_ready(item: dict[str, Any]) -> bool:
    """Whether Crossplane reports the managed cluster Ready=True."""
    for condition in (item.get("status") or {}).get("conditions") or []:
        if condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False


class ClusterDiscovery:
    """Find the target cluster on the management cluster."""

    def __init__(
        self,
        transport: ClusterTransport,
        waiter: ReadinessWaiter | None = None,
        default_project: str = "",
        interval: float = 5.0,
    ):
        """Initialize discovery.

        Args:
            transport: Transport bound to the management cluster.
            waiter: Readiness waiter (shares the run's cancel token).
            default_project: Project used when the resource does not name one.
            interval: Seconds between polls.
        """
        self.transport = transport
        self.waiter = waiter or ReadinessWaiter()
        self.default_project = default_project
        self.interval = interval

    def find(self) -> ClusterHandle | None:
        """Single lookup; None if no named cluster resource exists yet."""
        items = self.transport.get_json(MANAGED_CLUSTER_RESOURCE).get("items") or []
        for item in items:
            handle = handle_from_item(item, self.default_project)
            if handle is not None:
                return handle
        return None

    def discover(self, timeout: float = 60.0) -> ClusterHandle:
        """Poll until a managed cluster resource appears.

        Raises:
            DiscoveryTimeoutError: If none appears within timeout, or the
                run is cancelled.
        """
        found: list[ClusterHandle] = []

        def check() -> bool:
            handle = self.find()
            if handle is None:
                return False
            found.append(handle)
            return True

        result = self.waiter.wait(
            check,
            interval=self.interval,
            timeout=timeout,
            description="managed cluster resource",
        )
        if not result.ready or not found:
            raise DiscoveryTimeoutError(stage="TARGET_CLUSTER_DISCOVERED")

        handle = found[-1]
        logger.info(
            "target_cluster_discovered",
            name=handle.name,
            location=handle.location,
            project=handle.project,
            attempts=result.attempts,
        )
        return handle

    def is_ready(self, handle: ClusterHandle) -> bool:
        """Whether the managed resource for handle reports Ready=True."""
        item = self.transport.get_json(MANAGED_CLUSTER_RESOURCE, name=handle.name)
        return managed_cluster_ready(item)
