"""Shared test fixtures for nebula-cli tests.

This module provides fixtures for exercising the rollout and bootstrap
logic without a cluster:
- fake_clock / cancel: a clock that only moves when something sleeps
- waiter: ReadinessWaiter wired to both
- transport: scriptable in-memory ClusterTransport
- cloud: scriptable CloudProvider
"""

import pytest

from nebula_cli.config import NebulaConfig
from nebula_cli.rollout.readiness import ReadinessWaiter

from mocks import FakeCancelToken, FakeClock, FakeCloudProvider, FakeClusterTransport


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cancel(fake_clock: FakeClock) -> FakeCancelToken:
    return FakeCancelToken(fake_clock)


@pytest.fixture
def waiter(cancel: FakeCancelToken, fake_clock: FakeClock) -> ReadinessWaiter:
    """ReadinessWaiter that never really sleeps."""
    return ReadinessWaiter(cancel=cancel, clock=fake_clock)


@pytest.fixture
def transport() -> FakeClusterTransport:
    return FakeClusterTransport()


@pytest.fixture
def cloud() -> FakeCloudProvider:
    return FakeCloudProvider()


@pytest.fixture
def config() -> NebulaConfig:
    return NebulaConfig()
