"""Cluster transport: how nebula talks to a Kubernetes API server.

The rollout and bootstrap logic only sees ClusterTransport. KubectlTransport
implements it by shelling out to kubectl with an explicit --context, so the
same process can drive the management and the target cluster one after the
other without touching the global kubeconfig.
"""

from __future__ import annotations

import json
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..shared.logging import get_logger
from .context import ExecutionContext

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of a single CLI invocation."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        return (self.stderr or self.stdout).strip()


class ClusterTransport(ABC):
    """Narrow interface the rollout logic uses to reach a cluster."""

    @abstractmethod
    def cluster_reachable(self) -> bool:
        """Whether the API server answers."""

    @abstractmethod
    def apply_file(self, path: Path, dry_run: bool = False) -> CommandResult:
        """Apply a (multi-document) manifest file."""

    @abstractmethod
    def query(
        self,
        resource: str,
        jsonpath: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
        all_namespaces: bool = False,
    ) -> str:
        """Evaluate a JSONPath expression. Empty string when nothing matches."""

    @abstractmethod
    def get_json(
        self,
        resource: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """Fetch resources as JSON. Empty list object when nothing matches."""

    @abstractmethod
    def patch(
        self,
        resource: str,
        name: str,
        body: dict[str, Any],
        *,
        namespace: str | None = None,
        patch_type: str = "merge",
    ) -> CommandResult:
        """Patch a single resource."""

    @abstractmethod
    def ensure_namespace(self, namespace: str) -> CommandResult:
        """Create the namespace if it does not exist."""

    @abstractmethod
    def replace_secret_from_file(
        self,
        name: str,
        namespace: str,
        key: str,
        path: Path,
    ) -> CommandResult:
        """Delete and recreate a generic secret holding one file."""

    @abstractmethod
    def use_context(self, kube_context: str) -> CommandResult:
        """Make kube_context the kubeconfig's current context."""


class KubectlTransport(ClusterTransport):
    """ClusterTransport backed by the kubectl binary."""

    def __init__(self, context: ExecutionContext, kubeconfig: str | None = None):
        """Initialize transport.

        Args:
            context: Execution context (working dir and kube context).
            kubeconfig: Path to kubeconfig file.
        """
        self.context = context
        self.kubeconfig = kubeconfig

    def _kubectl_cmd(self) -> list[str]:
        """Build base kubectl command."""
        cmd = ["kubectl"]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context.kube_context:
            cmd.extend(["--context", self.context.kube_context])
        return cmd

    def run(self, args: list[str], input: str | None = None) -> CommandResult:
        """Run kubectl with the given arguments."""
        cmd = self._kubectl_cmd() + args
        logger.debug("kubectl", args=args, context=self.context.kube_context)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input,
                cwd=self.context.working_dir,
            )
        except FileNotFoundError:
            return CommandResult(127, stderr="kubectl not found. Is kubectl installed?")
        return CommandResult(result.returncode, result.stdout or "", result.stderr or "")

    def cluster_reachable(self) -> bool:
        return self.run(["cluster-info"]).ok

    def apply_file(self, path: Path, dry_run: bool = False) -> CommandResult:
        args = ["apply", "-f", str(path)]
        if dry_run:
            args.append("--dry-run=client")
        return self.run(args)

    def _get_args(
        self,
        resource: str,
        name: str | None,
        namespace: str | None,
        all_namespaces: bool = False,
    ) -> list[str]:
        args = ["get", resource]
        if name:
            args.append(name)
        if all_namespaces:
            args.append("--all-namespaces")
        elif namespace:
            args.extend(["-n", namespace])
        return args

    def query(
        self,
        resource: str,
        jsonpath: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
        all_namespaces: bool = False,
    ) -> str:
        result = self.run(
            self._get_args(resource, name, namespace, all_namespaces)
            + ["-o", f"jsonpath={jsonpath}"]
        )
        if not result.ok:
            return ""
        return result.stdout.strip()

    def get_json(
        self,
        resource: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        result = self.run(self._get_args(resource, name, namespace) + ["-o", "json"])
        if not result.ok or not result.stdout.strip():
            return {"items": []}
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            return {"items": []}

    def patch(
        self,
        resource: str,
        name: str,
        body: dict[str, Any],
        *,
        namespace: str | None = None,
        patch_type: str = "merge",
    ) -> CommandResult:
        args = ["patch", resource, name, "--type", patch_type, "-p", json.dumps(body)]
        if namespace:
            args.extend(["-n", namespace])
        return self.run(args)

    def ensure_namespace(self, namespace: str) -> CommandResult:
        rendered = self.run(
            ["create", "namespace", namespace, "--dry-run=client", "-o", "yaml"]
        )
        if not rendered.ok:
            return rendered
        return self.run(["apply", "-f", "-"], input=rendered.stdout)

    def replace_secret_from_file(
        self,
        name: str,
        namespace: str,
        key: str,
        path: Path,
    ) -> CommandResult:
        deleted = self.run(["delete", "secret", name, "-n", namespace, "--ignore-not-found"])
        if not deleted.ok:
            return deleted
        return self.run(
            [
                "create",
                "secret",
                "generic",
                name,
                f"--from-file={key}={path}",
                "-n",
                namespace,
            ]
        )

    def use_context(self, kube_context: str) -> CommandResult:
        return self.run(["config", "use-context", kube_context])
