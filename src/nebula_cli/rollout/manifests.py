"""Kubernetes manifest loading and writing.

Manifests come from multi-document YAML files produced by cdk8s synth.
Anything that is not a mapping with a kind and apiVersion is dropped here,
so classification never has to deal with partial documents.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class Manifest:
    """A single parsed Kubernetes resource."""

    api_version: str
    kind: str
    name: str = ""
    namespace: str | None = None
    body: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def identity(self) -> tuple[str, str, str | None, str]:
        """(kind, apiVersion, namespace, name)."""
        return (self.kind, self.api_version, self.namespace, self.name)

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> Manifest:
        metadata = doc.get("metadata") or {}
        return cls(
            api_version=str(doc["apiVersion"]),
            kind=str(doc["kind"]),
            name=str(metadata.get("name") or ""),
            namespace=metadata.get("namespace"),
            body=doc,
        )

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


def find_manifest_files(pattern: str, base_dir: Path | None = None) -> list[Path]:
    """Find manifest files matching a glob pattern.

    Args:
        pattern: Glob such as "dist/*.k8s.yaml". Relative patterns are
            resolved against base_dir.
        base_dir: Directory relative patterns are resolved against
            (default: current directory).

    Returns:
        Sorted list of matching files.
    """
    path = Path(pattern)
    if path.is_absolute():
        root = Path(path.anchor)
        relative = str(path.relative_to(root))
    else:
        root = base_dir or Path.cwd()
        relative = pattern

    return sorted(p for p in root.glob(relative) if p.is_file())


def parse_manifest_text(text: str) -> list[Manifest]:
    """Parse multi-document YAML into manifests, skipping invalid documents."""
    manifests = []
    for doc in yaml.safe_load_all(text):
        if not isinstance(doc, dict):
            continue
        if not doc.get("kind") or not doc.get("apiVersion"):
            continue
        manifests.append(Manifest.from_dict(doc))
    return manifests


def load_manifests(paths: Iterable[Path]) -> list[Manifest]:
    """Load every resource from the given files, in file order."""
    manifests: list[Manifest] = []
    for path in paths:
        manifests.extend(parse_manifest_text(Path(path).read_text()))
    return manifests


def write_manifests(path: Path, manifests: Iterable[Manifest]) -> Path:
    """Write manifests to file (multi-document YAML)."""
    with open(path, "w") as f:
        yaml.safe_dump_all(
            [m.body for m in manifests],
            f,
            default_flow_style=False,
            sort_keys=False,
        )
    return path
