"""Path management for nebula-cli.

Manages the ~/.nebula/ directory and the well-known locations the
bootstrap flow reads from.
"""

from pathlib import Path

# Base directory for all nebula data
NEBULA_DIR = Path.home() / ".nebula"

# Persistent CLI configuration
CONFIG_FILE = NEBULA_DIR / "config.yaml"

# gcloud Application Default Credentials
ADC_CREDENTIALS = Path.home() / ".config" / "gcloud" / "application_default_credentials.json"

# Where synthesized manifests land, relative to the project directory
DEFAULT_MANIFEST_DIR = "dist"
DEFAULT_MANIFEST_GLOB = f"{DEFAULT_MANIFEST_DIR}/*.k8s.yaml"


def default_credentials_path() -> Path | None:
    """Return the ADC credentials file if gcloud has written one."""
    if ADC_CREDENTIALS.exists():
        return ADC_CREDENTIALS
    return None
