"""Cloud provider access for the target cluster.

Only two questions are asked of the cloud: is the cluster running, and
give me credentials for it. GcloudProvider answers both with the gcloud CLI.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod

from ..shared.logging import get_logger
from .context import ClusterHandle
from .transport import CommandResult

logger = get_logger(__name__)

RUNNING = "RUNNING"


class CloudProvider(ABC):
    """Status and credentials for a cloud-managed cluster."""

    @abstractmethod
    def cluster_status(self, handle: ClusterHandle) -> str:
        """Provider status string (e.g. RUNNING, PROVISIONING). Empty if unknown."""

    @abstractmethod
    def get_credentials(self, handle: ClusterHandle) -> str:
        """Fetch credentials into kubeconfig and return the kube context name.

        Raises:
            RuntimeError: If credentials cannot be fetched.
        """


class GcloudProvider(CloudProvider):
    """GKE access through the gcloud CLI."""

    def _run(self, args: list[str]) -> CommandResult:
        logger.debug("gcloud", args=args)
        try:
            result = subprocess.run(
                ["gcloud", *args],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return CommandResult(127, stderr="gcloud not found. Is the Google Cloud SDK installed?")
        return CommandResult(result.returncode, result.stdout or "", result.stderr or "")

    @staticmethod
    def _location_args(handle: ClusterHandle) -> list[str]:
        args = []
        if handle.location:
            args.extend(["--location", handle.location])
        if handle.project:
            args.extend(["--project", handle.project])
        return args

    def cluster_status(self, handle: ClusterHandle) -> str:
        result = self._run(
            ["container", "clusters", "describe", handle.name]
            + self._location_args(handle)
            + ["--format=value(status)"]
        )
        if not result.ok:
            return ""
        return result.stdout.strip()

    def get_credentials(self, handle: ClusterHandle) -> str:
        result = self._run(
            ["container", "clusters", "get-credentials", handle.name]
            + self._location_args(handle)
        )
        if not result.ok:
            raise RuntimeError(f"gcloud get-credentials failed: {result.message}")
        return f"gke_{handle.project}_{handle.location}_{handle.name}"
