"""Execution context and cluster handles.

Everything that would otherwise be process-global (working directory, active
kubectl context, manifest output directory) travels in an ExecutionContext.
Switching from the management cluster to the target cluster means building a
new context, not mutating the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path


@dataclass(frozen=True)
class ClusterHandle:
    """A Kubernetes control plane nebula can target."""

    name: str
    location: str = ""
    project: str = ""
    kube_context: str | None = None

    def with_context(self, kube_context: str) -> ClusterHandle:
        return replace(self, kube_context=kube_context)


@dataclass(frozen=True)
class ExecutionContext:
    """Where and against which cluster a command runs."""

    working_dir: Path
    manifest_root: Path
    kube_context: str | None = None
    dry_run: bool = False

    @classmethod
    def create(
        cls,
        working_dir: Path | None = None,
        manifest_dir: str = "dist",
        kube_context: str | None = None,
        dry_run: bool = False,
    ) -> ExecutionContext:
        root = (working_dir or Path.cwd()).resolve()
        manifest_root = Path(manifest_dir)
        if not manifest_root.is_absolute():
            manifest_root = root / manifest_root
        return cls(
            working_dir=root,
            manifest_root=manifest_root,
            kube_context=kube_context,
            dry_run=dry_run,
        )

    def for_cluster(self, handle: ClusterHandle) -> ExecutionContext:
        """Context targeting the given cluster."""
        return replace(self, kube_context=handle.kube_context)
