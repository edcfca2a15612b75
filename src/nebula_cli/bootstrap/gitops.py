"""Argo CD root application sync.

After the workload plane is applied, Argo CD owns the cluster. nebula only
nudges it: wait for the API server, then trigger a sync of the root app and
poll until it reports Synced. Argo CD's own reconciliation does the rest,
so nothing here is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..cluster.transport import ClusterTransport
from ..rollout.readiness import ReadinessWaiter, deployment_available
from ..shared.logging import get_logger

logger = get_logger(__name__)

APPLICATION_RESOURCE = "applications.argoproj.io"
REFRESH_ANNOTATION = "argocd.argoproj.io/refresh"

SYNC_OPTIONS = [
    "CreateNamespace=true",
    "ServerSideApply=true",
    "SkipDryRunOnMissingResource=true",
    "RespectIgnoreDifferences=true",
]

IN_FLIGHT_PHASES = {"Running", "Terminating"}


@dataclass
class SyncResult:
    """Outcome of a sync attempt."""

    application: str
    converged: bool = False
    sync_status: str | None = None
    health_status: str | None = None
    syncs_triggered: int = 0
    warnings: list[str] = field(default_factory=list)


def operation_in_flight(app: dict[str, Any]) -> bool:
    """Whether Argo CD is already working on the application."""
    if app.get("operation"):
        return True
    phase = ((app.get("status") or {}).get("operationState") or {}).get("phase")
    return phase in IN_FLIGHT_PHASES


def sync_operation() -> dict[str, Any]:
    """Merge patch body that starts a new sync."""
    return {
        "operation": {
            "initiatedBy": {"username": "nebula"},
            "sync": {"syncOptions": list(SYNC_OPTIONS)},
        }
    }


class GitOpsSyncDriver:
    """Trigger and watch an Argo CD application sync."""

    def __init__(
        self,
        transport: ClusterTransport,
        waiter: ReadinessWaiter | None = None,
        namespace: str = "argocd",
        controller: str = "argocd-server",
        controller_timeout: float = 120.0,
        interval: float = 10.0,
        refresh_pause: float = 2.0,
    ):
        """Initialize driver.

        Args:
            transport: Transport bound to the target cluster.
            waiter: Readiness waiter (shares the run's cancel token).
            namespace: Namespace Argo CD and its applications live in.
            controller: Deployment that must be up before syncing.
            controller_timeout: How long to wait for the controller.
            interval: Seconds between sync status polls.
            refresh_pause: Pause between the hard refresh and the sync.
        """
        self.transport = transport
        self.waiter = waiter or ReadinessWaiter()
        self.namespace = namespace
        self.controller = controller
        self.controller_timeout = controller_timeout
        self.interval = interval
        self.refresh_pause = refresh_pause

    def _get(self, application: str) -> dict[str, Any]:
        return self.transport.get_json(
            APPLICATION_RESOURCE, name=application, namespace=self.namespace
        )

    def _patch(self, application: str, body: dict[str, Any]) -> bool:
        result = self.transport.patch(
            APPLICATION_RESOURCE,
            application,
            body,
            namespace=self.namespace,
        )
        if not result.ok:
            logger.debug("application_patch_failed", application=application, error=result.message)
        return result.ok

    def trigger_sync(self, application: str) -> bool:
        """Clear any stale operation, hard refresh, then start a sync.

        Returns False if cancelled during the pause or the sync patch failed.
        """
        self._patch(application, {"status": {"operationState": None}})
        self._patch(
            application,
            {"metadata": {"annotations": {REFRESH_ANNOTATION: "hard"}}},
        )
        if self.waiter.sleep(self.refresh_pause):
            return False
        return self._patch(application, sync_operation())

    def sync_and_wait_converged(self, application: str, timeout: float = 600.0) -> SyncResult:
        """Sync the application and wait for it to report Synced.

        Never raises; non-convergence is reported in the result.
        """
        result = SyncResult(application=application)

        controller = self.waiter.wait(
            deployment_available(self.transport, self.controller, self.namespace),
            interval=self.interval,
            timeout=self.controller_timeout,
            description=f"{self.controller} ready",
        )
        if not controller.ready:
            self._warn(result, f"{self.controller} not ready after {self.controller_timeout:.0f}s, trying anyway")

        def check() -> bool:
            app = self._get(application)
            status = app.get("status") or {}
            result.sync_status = (status.get("sync") or {}).get("status")
            result.health_status = (status.get("health") or {}).get("status")
            if result.sync_status == "Synced":
                return True
            if operation_in_flight(app):
                logger.debug("sync_in_progress", application=application)
                return False
            if self.trigger_sync(application):
                result.syncs_triggered += 1
                logger.info("sync_triggered", application=application)
            return False

        outcome = self.waiter.wait(
            check,
            interval=self.interval,
            timeout=timeout,
            description=f"{application} synced",
        )
        result.converged = outcome.ready
        if result.converged:
            logger.info(
                "application_synced",
                application=application,
                health=result.health_status,
            )
        else:
            self._warn(
                result,
                f"Application {application} not synced after {timeout:.0f}s "
                f"(sync={result.sync_status or 'unknown'}); Argo CD will keep reconciling",
            )
        return result

    @staticmethod
    def _warn(result: SyncResult, message: str) -> None:
        logger.warning(message)
        result.warnings.append(message)
