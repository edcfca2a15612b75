"""Error types for nebula-cli.

Every error that should stop a command is a NebulaError. Commands catch it,
print the one-line message and exit non-zero. Anything that degrades to a
warning is never raised; it is logged and collected instead.
"""

from dataclasses import dataclass


@dataclass
class NebulaError(Exception):
    """Base error class for fatal nebula errors."""

    message: str
    stage: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class PrerequisiteError(NebulaError):
    """A required command-line tool is missing."""

    message: str = "Required tool not found"


@dataclass
class ClusterUnreachableError(NebulaError):
    """kubectl cannot reach the active cluster."""

    message: str = "Cannot connect to cluster. Is kubectl configured correctly?"


@dataclass
class NoManifestsError(NebulaError):
    """A manifest glob matched nothing."""

    message: str = "No manifest files found"


@dataclass
class ApplyError(NebulaError):
    """A phase that must succeed could not be applied."""

    message: str = "Failed to apply manifests"


@dataclass
class CredentialsNotFoundError(NebulaError):
    """Neither an explicit credentials file nor ADC is available."""

    message: str = (
        "No credentials file provided and ADC not found. "
        "Run: gcloud auth application-default login"
    )


@dataclass
class DiscoveryTimeoutError(NebulaError):
    """No managed cluster resource appeared on the management cluster."""

    message: str = "No GKE cluster resource found in management cluster"


@dataclass
class ClusterNotReadyError(NebulaError):
    """The target cluster did not become ready in time."""

    message: str = "Target cluster did not become ready"


@dataclass
class ContextSwitchError(NebulaError):
    """Credentials for the target cluster could not be fetched."""

    message: str = "Failed to switch to target cluster"


@dataclass
class RenderError(NebulaError):
    """Manifest synthesis failed."""

    message: str = "Failed to synthesize manifests"


@dataclass
class BootstrapAborted(NebulaError):
    """The run was interrupted by a signal."""

    message: str = "Bootstrap aborted"
