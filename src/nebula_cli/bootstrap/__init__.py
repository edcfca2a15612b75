"""Bootstrap package for bringing up the nebula platform.

This package provides the `nebula bootstrap` command's machinery, which:
1. Creates (or reuses) a kind management cluster
2. Seeds cloud credentials for Crossplane
3. Renders and applies the management plane
4. Discovers the GKE cluster Crossplane creates and waits for it
5. Switches kubectl to it and applies the workload plane
6. Asks Argo CD to sync the root application
"""

from .credentials import CredentialSeeder, resolve_credentials
from .discovery import MANAGED_CLUSTER_RESOURCE, ClusterDiscovery
from .gitops import GitOpsSyncDriver, SyncResult, operation_in_flight
from .orchestrator import BootstrapOrchestrator
from .render import ManifestRenderer, app_command
from .state import BootstrapOptions, BootstrapStage, BootstrapState

__all__ = [
    # Rendering
    "ManifestRenderer",
    "app_command",
    # Credentials
    "CredentialSeeder",
    "resolve_credentials",
    # Discovery
    "ClusterDiscovery",
    "MANAGED_CLUSTER_RESOURCE",
    # GitOps
    "GitOpsSyncDriver",
    "SyncResult",
    "operation_in_flight",
    # State
    "BootstrapOptions",
    "BootstrapStage",
    "BootstrapState",
    # Orchestration
    "BootstrapOrchestrator",
]
