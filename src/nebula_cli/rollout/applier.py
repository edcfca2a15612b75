"""Phased manifest application.

Applies a flat set of manifests in dependency order:

1. CRDs and Namespaces, then wait for CRDs to be established
2. Controllers (Deployments, RBAC, Services...), then wait for them and for
   any CRDs they install
3. Crossplane Providers (must succeed), then wait for them to be healthy
4. ProviderConfigs
5. Everything else, retried after a grace period if the first apply fails

Wait timeouts are warnings, not failures: later reconciliation by Crossplane
or Argo CD heals transient ordering problems. Cancellation stops the rollout
at the next phase boundary and the report is marked cancelled.
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ApplyError, ClusterUnreachableError
from ..shared.logging import get_logger
from .manifests import Manifest, write_manifests
from .phases import ApplyEffort, Phase, PhasePolicy, default_policies, partition
from .readiness import ReadinessWaiter

if TYPE_CHECKING:
    from ..cluster.transport import ClusterTransport

logger = get_logger(__name__)


@dataclass
class PhaseReport:
    """What happened to one phase."""

    phase: Phase
    resources: int
    applied: bool = False
    attempts: int = 0
    waits: dict[str, bool] = field(default_factory=dict)


@dataclass
class ApplyReport:
    """Result of a PhasedApplier run."""

    dry_run: bool = False
    cancelled: bool = False
    phases: list[PhaseReport] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_resources(self) -> int:
        return sum(p.resources for p in self.phases)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class PhasedApplier:
    """Apply manifests phase by phase with readiness gating."""

    def __init__(
        self,
        transport: ClusterTransport,
        waiter: ReadinessWaiter | None = None,
        policies: Sequence[PhasePolicy] | None = None,
        dry_run: bool = False,
        on_phase: Callable[[Phase, int], None] | None = None,
    ):
        """Initialize applier.

        Args:
            transport: ClusterTransport for the target cluster.
            waiter: Readiness waiter (shares the run's cancel token).
            policies: Phase policy table (default: default_policies()).
            dry_run: Apply with --dry-run=client, skip waits and retries.
            on_phase: Optional callback called with (phase, resource_count)
                before a non-empty phase is applied, for progress reporting.
        """
        self.transport = transport
        self.waiter = waiter or ReadinessWaiter()
        self.policies = sorted(policies or default_policies(), key=lambda p: p.phase.value)
        self.dry_run = dry_run
        self.on_phase = on_phase

    def apply(self, manifests: Sequence[Manifest]) -> ApplyReport:
        """Apply all manifests.

        Returns:
            ApplyReport; cancelled is set if the token fired, in which case
            later phases were not applied.

        Raises:
            ClusterUnreachableError: If the cluster cannot be reached.
            ApplyError: If a MUST_SUCCEED phase fails to apply.
        """
        if not self.transport.cluster_reachable():
            raise ClusterUnreachableError()

        buckets = partition(manifests)
        report = ApplyReport(dry_run=self.dry_run)
        logger.info(
            "rollout_plan",
            dry_run=self.dry_run,
            **{phase.name.lower(): len(buckets[phase]) for phase in Phase},
        )

        with tempfile.TemporaryDirectory(prefix="nebula-apply-") as tmpdir:
            for policy in self.policies:
                bucket = buckets[policy.phase]
                if not bucket:
                    continue
                # Nothing more is applied once the run is cancelled
                if self.waiter.cancel.cancelled:
                    report.warn(f"Rollout cancelled before {policy.phase.label}, remaining phases skipped")
                    break
                report.phases.append(
                    self._apply_phase(policy, bucket, Path(tmpdir), report)
                )

        report.cancelled = self.waiter.cancel.cancelled
        return report

    def _apply_phase(
        self,
        policy: PhasePolicy,
        bucket: list[Manifest],
        workdir: Path,
        report: ApplyReport,
    ) -> PhaseReport:
        phase = policy.phase
        phase_report = PhaseReport(phase=phase, resources=len(bucket))
        if self.on_phase:
            self.on_phase(phase, len(bucket))

        path = write_manifests(
            workdir / f"{phase.value}-{phase.name.lower().replace('_', '-')}.yaml",
            bucket,
        )
        logger.info("applying_phase", phase=phase.label, resources=len(bucket))

        result = self.transport.apply_file(path, dry_run=self.dry_run)
        phase_report.attempts = 1

        if not result.ok and policy.effort == ApplyEffort.MUST_SUCCEED:
            raise ApplyError(
                f"Failed to apply {phase.label}: {result.message}",
                stage=phase.name,
            )

        retries_left = 0 if self.dry_run else policy.retry_attempts
        while not result.ok and retries_left > 0:
            logger.info(
                "retrying_phase",
                phase=phase.label,
                delay=policy.retry_delay,
                error=result.message,
            )
            if self.waiter.sleep(policy.retry_delay):
                break
            result = self.transport.apply_file(path, dry_run=self.dry_run)
            phase_report.attempts += 1
            retries_left -= 1

        phase_report.applied = result.ok
        if not result.ok:
            report.warn(f"{phase.label}: some resources failed to apply: {result.message}")

        if self.dry_run or self.waiter.cancel.cancelled:
            return phase_report

        for spec in policy.waits:
            outcome = self.waiter.wait(
                spec.predicate(self.transport),
                interval=spec.interval,
                timeout=spec.timeout,
                description=spec.description,
            )
            phase_report.waits[spec.description] = outcome.ready
            if outcome.ready:
                logger.info("phase_ready", phase=phase.label, check=spec.description)
            elif outcome.cancelled:
                report.warn(f"{phase.label}: wait for {spec.description} cancelled")
                break
            else:
                report.warn(
                    f"{phase.label}: {spec.description} not satisfied after "
                    f"{spec.timeout:.0f}s, continuing"
                )

        return phase_report
