"""Shared modules for nebula-cli.

Path layout and logging configuration used by every command.
"""

from .logging import configure_logging, get_logger
from .paths import (
    ADC_CREDENTIALS,
    CONFIG_FILE,
    DEFAULT_MANIFEST_DIR,
    DEFAULT_MANIFEST_GLOB,
    NEBULA_DIR,
    default_credentials_path,
)

__all__ = [
    # Paths
    "NEBULA_DIR",
    "CONFIG_FILE",
    "ADC_CREDENTIALS",
    "DEFAULT_MANIFEST_DIR",
    "DEFAULT_MANIFEST_GLOB",
    "default_credentials_path",
    # Logging
    "configure_logging",
    "get_logger",
]
