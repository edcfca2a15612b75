"""kind management cluster lifecycle."""

from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path

import yaml

from .transport import CommandResult

KIND_CONFIG = {
    "kind": "Cluster",
    "apiVersion": "kind.x-k8s.io/v1alpha4",
    "nodes": [{"role": "control-plane"}],
}


class KindClusterManager:
    """Create, find and delete kind clusters."""

    def _run(self, args: list[str], capture: bool = True) -> CommandResult:
        try:
            result = subprocess.run(
                ["kind", *args],
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError:
            return CommandResult(127, stderr="kind not found. Install it: https://kind.sigs.k8s.io/")
        return CommandResult(result.returncode, result.stdout or "", result.stderr or "")

    @staticmethod
    def context_name(name: str) -> str:
        return f"kind-{name}"

    def list_clusters(self) -> list[str]:
        result = self._run(["get", "clusters"])
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def exists(self, name: str) -> bool:
        return name in self.list_clusters()

    def create(self, name: str) -> CommandResult:
        """Create a single-node cluster.

        Output is streamed to the terminal because node image pulls take a
        while and kind reports its own progress.
        """
        with tempfile.TemporaryDirectory(prefix="nebula-kind-") as tmpdir:
            config_path = Path(tmpdir) / f"kind-config-{name}.yaml"
            config_path.write_text(yaml.safe_dump(KIND_CONFIG, sort_keys=False))
            return self._run(
                ["create", "cluster", "--name", name, "--config", str(config_path)],
                capture=False,
            )

    def delete(self, name: str) -> CommandResult:
        return self._run(["delete", "cluster", "--name", name], capture=False)
