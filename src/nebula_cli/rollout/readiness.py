"""Readiness polling for staged rollouts.

Every wait in nebula goes through ReadinessWaiter: evaluate a predicate,
sleep, repeat until it holds or the timeout runs out. A wait never raises;
callers decide what a timeout means. Predicate exceptions count as
"not ready yet".
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..shared.logging import get_logger

if TYPE_CHECKING:
    from ..cluster.transport import ClusterTransport

logger = get_logger(__name__)

Predicate = Callable[[], bool]

CRD_RESOURCE = "customresourcedefinitions"
PROVIDER_RESOURCE = "providers.pkg.crossplane.io"
FUNCTION_RESOURCE = "functions.pkg.crossplane.io"

CRD_ESTABLISHED_PATH = "{.items[*].status.conditions[?(@.type=='Established')].status}"
DEPLOYMENT_REPLICAS_PATH = (
    "{range .items[*]}{.metadata.name}={.status.readyReplicas}/{.status.replicas} {end}"
)
NAMES_PATH = "{.items[*].metadata.name}"
PROVIDER_HEALTHY_PATH = "{.items[*].status.conditions[?(@.type=='Healthy')].status}"
READY_REPLICAS_PATH = "{.status.readyReplicas}"

_REPLICAS_RE = re.compile(r"=(\d+)/(\d+)$")


class CancelToken:
    """Cooperative cancellation shared by every wait in a run.

    Sleeping through the token lets a signal handler interrupt a wait at
    the next sleep boundary instead of after a full polling interval.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def sleep(self, seconds: float) -> bool:
        """Sleep up to `seconds`. Returns True if cancelled."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


class WaitOutcome(Enum):
    """Result of a readiness wait."""

    READY = "ready"
    TIMED_OUT = "timed_out"


@dataclass
class WaitResult:
    """Result of a readiness wait."""

    outcome: WaitOutcome
    attempts: int = 0
    elapsed_seconds: float = 0.0
    last_error: str | None = None
    cancelled: bool = False

    @property
    def ready(self) -> bool:
        return self.outcome == WaitOutcome.READY


class ReadinessWaiter:
    """Poll a predicate until it holds, the timeout expires, or the run is cancelled."""

    def __init__(
        self,
        cancel: CancelToken | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize waiter.

        Args:
            cancel: Token shared with the signal handler. A fresh one is
                created if omitted.
            clock: Monotonic clock; injectable for tests.
        """
        self.cancel = cancel or CancelToken()
        self.clock = clock

    def sleep(self, seconds: float) -> bool:
        """Cancel-aware sleep. Returns True if cancelled."""
        return self.cancel.sleep(seconds)

    def wait(
        self,
        predicate: Predicate,
        interval: float,
        timeout: float,
        description: str = "",
    ) -> WaitResult:
        """Poll predicate until it returns True or timeout elapses.

        Args:
            predicate: Zero-argument callable; exceptions mean "not ready".
            interval: Seconds between evaluations.
            timeout: Total budget in seconds.
            description: Used in log events.

        Returns:
            WaitResult. TIMED_OUT (with cancelled=True) if the token fired.
        """
        start = self.clock()
        attempts = 0
        last_error: str | None = None

        while True:
            if self.cancel.cancelled:
                return WaitResult(
                    WaitOutcome.TIMED_OUT,
                    attempts=attempts,
                    elapsed_seconds=self.clock() - start,
                    last_error=last_error,
                    cancelled=True,
                )

            attempts += 1
            try:
                satisfied = bool(predicate())
            except Exception as e:
                satisfied = False
                last_error = str(e)
                logger.debug("readiness_check_error", check=description, error=last_error)

            elapsed = self.clock() - start
            if satisfied:
                logger.debug(
                    "readiness_check_ready",
                    check=description,
                    attempts=attempts,
                    elapsed=round(elapsed, 1),
                )
                return WaitResult(
                    WaitOutcome.READY,
                    attempts=attempts,
                    elapsed_seconds=elapsed,
                    last_error=last_error,
                )

            remaining = timeout - elapsed
            if remaining <= 0:
                return WaitResult(
                    WaitOutcome.TIMED_OUT,
                    attempts=attempts,
                    elapsed_seconds=elapsed,
                    last_error=last_error,
                )

            if self.cancel.sleep(min(interval, remaining)):
                return WaitResult(
                    WaitOutcome.TIMED_OUT,
                    attempts=attempts,
                    elapsed_seconds=self.clock() - start,
                    last_error=last_error,
                    cancelled=True,
                )


def poll_until(
    predicate: Predicate,
    interval: float,
    timeout: float,
    cancel: CancelToken | None = None,
) -> WaitResult:
    """Shorthand for ReadinessWaiter(cancel).wait(...)."""
    return ReadinessWaiter(cancel).wait(predicate, interval, timeout)


# -------------------------------------------------------------------------
# Predicates
# -------------------------------------------------------------------------


def _all_true(raw: str) -> bool:
    statuses = raw.split()
    return bool(statuses) and all(s == "True" for s in statuses)


def crds_established(transport: ClusterTransport) -> Predicate:
    """All CRDs report Established=True (and at least one CRD exists)."""

    def check() -> bool:
        return _all_true(transport.query(CRD_RESOURCE, CRD_ESTABLISHED_PATH))

    return check


def deployments_ready(transport: ClusterTransport) -> Predicate:
    """Every deployment in every namespace has readyReplicas >= replicas > 0."""

    def check() -> bool:
        raw = transport.query("deployments", DEPLOYMENT_REPLICAS_PATH, all_namespaces=True)
        entries = raw.split()
        if not entries:
            return False
        for entry in entries:
            match = _REPLICAS_RE.search(entry)
            if not match:
                return False
            ready, desired = int(match.group(1)), int(match.group(2))
            if desired <= 0 or ready < desired:
                return False
        return True

    return check


def providers_healthy(transport: ClusterTransport) -> Predicate:
    """All Crossplane providers report Healthy=True; none installed is ready."""

    def check() -> bool:
        names = transport.query(PROVIDER_RESOURCE, NAMES_PATH).split()
        if not names:
            logger.info("no_providers_to_wait_for")
            return True
        # Providers without a Healthy condition yet emit nothing
        statuses = transport.query(PROVIDER_RESOURCE, PROVIDER_HEALTHY_PATH).split()
        return len(statuses) >= len(names) and _all_true(" ".join(statuses))

    return check


def _condition(item: dict, condition_type: str) -> str | None:
    for condition in (item.get("status") or {}).get("conditions") or []:
        if condition.get("type") == condition_type:
            return condition.get("status")
    return None


def functions_healthy(transport: ClusterTransport) -> Predicate:
    """All Crossplane functions are Installed and Healthy; none installed is ready."""

    def check() -> bool:
        items = transport.get_json(FUNCTION_RESOURCE).get("items") or []
        if not items:
            logger.info("no_functions_to_wait_for")
            return True
        return all(
            _condition(fn, "Installed") == "True" and _condition(fn, "Healthy") == "True"
            for fn in items
        )

    return check


def deployment_available(
    transport: ClusterTransport,
    name: str,
    namespace: str,
    min_ready: int = 1,
) -> Predicate:
    """A named deployment has at least `min_ready` ready replicas."""

    def check() -> bool:
        raw = transport.query("deployment", READY_REPLICAS_PATH, name=name, namespace=namespace)
        return bool(raw.strip()) and int(raw.strip()) >= min_ready

    return check
