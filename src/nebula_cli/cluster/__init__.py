"""Cluster access: execution context, kubectl transport, cloud and kind."""

from .cloud import RUNNING, CloudProvider, GcloudProvider
from .context import ClusterHandle, ExecutionContext
from .kind import KindClusterManager
from .prerequisites import ToolDetector, ToolInfo
from .transport import ClusterTransport, CommandResult, KubectlTransport

__all__ = [
    # Context
    "ClusterHandle",
    "ExecutionContext",
    # Transport
    "ClusterTransport",
    "CommandResult",
    "KubectlTransport",
    # Cloud
    "CloudProvider",
    "GcloudProvider",
    "RUNNING",
    # Local cluster
    "KindClusterManager",
    # Prerequisites
    "ToolDetector",
    "ToolInfo",
]
