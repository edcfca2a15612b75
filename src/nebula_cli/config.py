"""CLI configuration management.

Handles persistent configuration stored in ~/.nebula/config.yaml.
Supports environment variable overrides (NEBULA_<KEY>) and tracks where each
value came from.

Every timeout, polling interval and retry knob used by the rollout lives
here, so none of them are load-bearing constants in the code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .shared.paths import CONFIG_FILE, DEFAULT_MANIFEST_DIR

ENV_PREFIX = "NEBULA_"

DEFAULT_WORKLOAD_MODULES = [
    "providers",
    "crossplane",
    "dns",
    "cert-manager",
    "cluster-api",
    "ingress-nginx",
    "external-dns",
    "monitoring",
    "argocd",
    "argocd-apps",
]

# Applied before the rest, which waits for Crossplane functions to be healthy
DEFAULT_CORE_WORKLOAD_MODULES = ["providers", "crossplane"]


@dataclass
class NebulaConfig:
    """Bootstrap and rollout configuration."""

    # Management cluster
    cluster_name: str = "nebula"
    credentials_namespace: str = "crossplane-system"
    credentials_secret: str = "gcp-creds"
    credentials_key: str = "creds"

    # Rendering
    manifest_dir: str = DEFAULT_MANIFEST_DIR
    bootstrap_app: str = "bootstrap.py"
    workload_modules: list[str] = field(default_factory=lambda: list(DEFAULT_WORKLOAD_MODULES))
    core_workload_modules: list[str] = field(
        default_factory=lambda: list(DEFAULT_CORE_WORKLOAD_MODULES)
    )

    # PhasedApplier waits
    crd_timeout: float = 60.0
    crd_interval: float = 2.0
    controller_timeout: float = 120.0
    controller_interval: float = 5.0
    controller_crd_timeout: float = 120.0
    provider_timeout: float = 300.0
    provider_interval: float = 5.0
    workload_retry_delay: float = 10.0
    workload_retry_attempts: int = 1

    # Bootstrap waits
    function_timeout: float = 120.0
    function_interval: float = 5.0
    discovery_timeout: float = 60.0
    discovery_interval: float = 5.0
    target_ready_timeout: float = 900.0
    target_ready_interval: float = 30.0

    # GitOps
    gitops_namespace: str = "argocd"
    gitops_controller: str = "argocd-server"
    gitops_application: str = "argocd-apps"
    gitops_controller_timeout: float = 120.0
    gitops_timeout: float = 600.0
    gitops_interval: float = 10.0
    gitops_refresh_pause: float = 2.0

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")


def get_config_path() -> Path:
    """Get the CLI config file path.

    Returns:
        Path to ~/.nebula/config.yaml
    """
    return CONFIG_FILE


def _config_keys() -> list[str]:
    return [f.name for f in fields(NebulaConfig) if not f.name.startswith("_")]


def _coerce(key: str, value: Any) -> Any:
    """Convert a raw file/env value to the type of the field's default."""
    default = getattr(NebulaConfig(), key)
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, list):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [str(item) for item in value]
    return str(value)


def load_config(config_path: str | Path | None = None) -> NebulaConfig:
    """Load CLI configuration.

    Precedence (highest to lowest):
    1. Environment variables (NEBULA_CRD_TIMEOUT, NEBULA_CLUSTER_NAME, ...)
    2. Config file (--config, else ~/.nebula/config.yaml)
    3. Defaults

    Args:
        config_path: Explicit config file. A missing explicit file is an error.

    Returns:
        NebulaConfig with values and sources

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ValueError: If a value cannot be converted to the expected type.
    """
    config = NebulaConfig()
    sources: dict[str, str] = {key: "default" for key in _config_keys()}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = get_config_path()

    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}

        for key in _config_keys():
            if key in file_config:
                setattr(config, key, _coerce(key, file_config[key]))
                sources[key] = "config file"

    for key in _config_keys():
        env_value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if env_value:
            try:
                setattr(config, key, _coerce(key, env_value))
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{key.upper()}: {env_value}") from e
            sources[key] = "environment"

    config._sources = sources
    return config
