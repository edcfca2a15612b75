"""Unit tests for the Argo CD sync driver."""

from __future__ import annotations

from mocks import FakeCancelToken, FakeClusterTransport

from nebula_cli.bootstrap.gitops import (
    APPLICATION_RESOURCE,
    REFRESH_ANNOTATION,
    SYNC_OPTIONS,
    GitOpsSyncDriver,
    operation_in_flight,
    sync_operation,
)
from nebula_cli.rollout.readiness import READY_REPLICAS_PATH, ReadinessWaiter


def app(sync: str, operation: dict | None = None, phase: str | None = None) -> dict:
    body: dict = {"status": {"sync": {"status": sync}, "health": {"status": "Healthy"}}}
    if operation is not None:
        body["operation"] = operation
    if phase is not None:
        body["status"]["operationState"] = {"phase": phase}
    return body


def argocd(*states: dict, server_ready: str = "1") -> FakeClusterTransport:
    transport = FakeClusterTransport()
    transport.script_query("deployment", READY_REPLICAS_PATH, server_ready)
    transport.script_object(APPLICATION_RESOURCE, *states, name="argocd-apps")
    return transport


class TestOperationInFlight:
    """Tests for operation_in_flight()."""

    def test_operation_field(self):
        """Test a pending operation counts as in flight."""
        assert operation_in_flight(app("OutOfSync", operation={"sync": {}}))

    def test_running_and_terminating(self):
        """Test Running and Terminating phases."""
        assert operation_in_flight(app("OutOfSync", phase="Running"))
        assert operation_in_flight(app("OutOfSync", phase="Terminating"))

    def test_finished_operation(self):
        """Test Failed/Succeeded are not in flight."""
        assert not operation_in_flight(app("OutOfSync", phase="Failed"))
        assert not operation_in_flight(app("OutOfSync"))


class TestSyncOperation:
    """Tests for the sync patch body."""

    def test_sync_options(self):
        """Test every required sync option is present."""
        options = sync_operation()["operation"]["sync"]["syncOptions"]
        assert options == SYNC_OPTIONS
        assert "ServerSideApply=true" in options
        assert "CreateNamespace=true" in options


class TestGitOpsSyncDriver:
    """Tests for sync_and_wait_converged()."""

    def test_already_synced_issues_no_patch(self, waiter):
        """Test an already-Synced application is left alone."""
        transport = argocd(app("Synced"))

        result = GitOpsSyncDriver(transport, waiter=waiter).sync_and_wait_converged("argocd-apps")

        assert result.converged
        assert result.sync_status == "Synced"
        assert result.health_status == "Healthy"
        assert transport.patches == []

    def test_out_of_sync_triggers_sync(self, waiter, cancel):
        """Test clear, hard refresh, pause, then sync, and convergence after."""
        transport = argocd(app("OutOfSync"), app("OutOfSync", phase="Running"), app("Synced"))

        result = GitOpsSyncDriver(transport, waiter=waiter).sync_and_wait_converged("argocd-apps")

        assert result.converged
        assert result.syncs_triggered == 1
        bodies = [body for _, _, body in transport.patches]
        assert bodies[0] == {"status": {"operationState": None}}
        assert bodies[1] == {"metadata": {"annotations": {REFRESH_ANNOTATION: "hard"}}}
        assert bodies[2]["operation"]["sync"]["syncOptions"] == SYNC_OPTIONS
        assert len(bodies) == 3
        # refresh pause, then two poll intervals
        assert cancel.sleeps == [2.0, 10.0, 10.0]

    def test_in_flight_is_not_interrupted(self, waiter):
        """Test a running operation is polled, not re-triggered."""
        transport = argocd(app("OutOfSync", phase="Running"), app("Synced"))

        result = GitOpsSyncDriver(transport, waiter=waiter).sync_and_wait_converged("argocd-apps")

        assert result.converged
        assert transport.patches == []

    def test_non_convergence_is_a_warning(self, waiter, fake_clock):
        """Test timeout returns converged=False instead of raising."""
        transport = argocd(app("OutOfSync", phase="Running"))

        result = GitOpsSyncDriver(transport, waiter=waiter).sync_and_wait_converged("argocd-apps", timeout=60)

        assert not result.converged
        assert result.sync_status == "OutOfSync"
        assert any("not synced" in w for w in result.warnings)

    def test_controller_not_ready_continues(self, waiter):
        """Test a slow argocd-server is a warning, polling still happens."""
        transport = argocd(app("Synced"), server_ready="")

        driver = GitOpsSyncDriver(transport, waiter=waiter, controller_timeout=20)
        result = driver.sync_and_wait_converged("argocd-apps")

        assert result.converged
        assert any("argocd-server" in w for w in result.warnings)

    def test_cancelled_during_refresh_pause(self, fake_clock):
        """Test cancellation during the pause skips the sync patch."""
        cancel = FakeCancelToken(fake_clock, cancel_after_sleeps=1)
        waiter = ReadinessWaiter(cancel=cancel, clock=fake_clock)
        transport = argocd(app("OutOfSync"))

        result = GitOpsSyncDriver(transport, waiter=waiter).sync_and_wait_converged("argocd-apps")

        assert not result.converged
        assert result.syncs_triggered == 0
        assert len(transport.patches) == 2
