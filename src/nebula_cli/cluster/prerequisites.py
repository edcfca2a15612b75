"""Prerequisite detection for the bootstrap and apply commands.

Checks that the command-line tools nebula shells out to are on PATH.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import PrerequisiteError

INSTALL_HINTS = {
    "kubectl": "Install kubectl: https://kubernetes.io/docs/tasks/tools/",
    "kind": "Install kind: https://kind.sigs.k8s.io/docs/user/quick-start/#installation",
    "gcloud": "Install the Google Cloud SDK: https://cloud.google.com/sdk/docs/install",
    "cdk8s": "Install cdk8s: npm install -g cdk8s-cli",
}


@dataclass
class ToolInfo:
    """Tool detection result."""

    name: str
    available: bool
    path: str | None = None
    error: str | None = None


class ToolDetector:
    """Detect command-line tools on PATH."""

    def detect(self, name: str) -> ToolInfo:
        """Check a single tool."""
        path = shutil.which(name)
        if not path:
            hint = INSTALL_HINTS.get(name, "")
            return ToolInfo(
                name=name,
                available=False,
                error=f"{name} not found. {hint}".strip(),
            )
        return ToolInfo(name=name, available=True, path=path)

    def require(self, names: Iterable[str]) -> list[ToolInfo]:
        """Check every tool; raise on the first one that is missing.

        Raises:
            PrerequisiteError: If a tool is not installed.
        """
        found = []
        for name in names:
            info = self.detect(name)
            if not info.available:
                raise PrerequisiteError(info.error or f"{name} not found")
            found.append(info)
        return found
