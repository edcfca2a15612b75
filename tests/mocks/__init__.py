"""Test mocks for nebula-cli.

Provides in-memory implementations for testing:
- FakeClusterTransport: scriptable kubectl stand-in
- FakeCloudProvider: scriptable gcloud stand-in
- FakeKind / FakeRenderer / FakeDetector: kind, cdk8s and PATH stand-ins
- FakeClock / FakeCancelToken: deterministic time
"""

from .fake_cluster import (
    AppliedFile,
    FakeCancelToken,
    FakeClock,
    FakeCloudProvider,
    FakeClusterTransport,
    FakeDetector,
    FakeKind,
    FakeRenderer,
)

__all__ = [
    "AppliedFile",
    "FakeCancelToken",
    "FakeClock",
    "FakeCloudProvider",
    "FakeClusterTransport",
    "FakeDetector",
    "FakeKind",
    "FakeRenderer",
]
