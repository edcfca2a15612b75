"""End-to-end bootstrap.

Drives a linear sequence of stages from nothing to a GitOps-managed target
cluster:

    kind cluster -> credentials -> management plane (Crossplane) ->
    providers healthy -> discover GKE cluster -> wait for it ->
    switch context -> workload plane -> Argo CD sync

Each stage is idempotent. A signal cancels the shared CancelToken; every wait
returns early and the run stops at the next stage boundary.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

from ..cluster.cloud import RUNNING, CloudProvider, GcloudProvider
from ..cluster.context import ClusterHandle, ExecutionContext
from ..cluster.kind import KindClusterManager
from ..cluster.prerequisites import ToolDetector
from ..cluster.transport import ClusterTransport, KubectlTransport
from ..config import NebulaConfig
from ..errors import (
    BootstrapAborted,
    ClusterNotReadyError,
    ContextSwitchError,
    DiscoveryTimeoutError,
    NebulaError,
    NoManifestsError,
)
from ..rollout.applier import ApplyReport, PhasedApplier
from ..rollout.manifests import find_manifest_files, load_manifests
from ..rollout.phases import Phase, default_policies
from ..rollout.readiness import CancelToken, ReadinessWaiter, functions_healthy
from ..shared.logging import get_logger
from .credentials import CredentialSeeder
from .discovery import ClusterDiscovery
from .gitops import GitOpsSyncDriver, SyncResult
from .render import ManifestRenderer
from .state import BootstrapOptions, BootstrapStage, BootstrapState

logger = get_logger(__name__)

TransportFactory = Callable[[ExecutionContext], ClusterTransport]

MANAGEMENT_MANIFEST_GLOB = "*.k8s.yaml"


class BootstrapOrchestrator:
    """Run the bootstrap stages in order."""

    def __init__(
        self,
        options: BootstrapOptions,
        context: ExecutionContext,
        config: NebulaConfig | None = None,
        transport_factory: TransportFactory | None = None,
        cloud: CloudProvider | None = None,
        kind: KindClusterManager | None = None,
        renderer: ManifestRenderer | None = None,
        detector: ToolDetector | None = None,
        waiter: ReadinessWaiter | None = None,
        on_stage: Callable[[BootstrapStage], None] | None = None,
        on_phase: Callable[[Phase, int], None] | None = None,
    ):
        """Initialize orchestrator.

        Args:
            options: Bootstrap command options.
            context: Base execution context (working dir, manifest root).
            config: Timeouts and names (default: NebulaConfig()).
            transport_factory: Builds a transport for a context
                (default: KubectlTransport).
            cloud: Cloud provider for the target cluster.
            kind: kind cluster manager.
            renderer: cdk8s renderer.
            detector: Prerequisite detector.
            waiter: Readiness waiter; its CancelToken aborts the run.
            on_stage: Called before each stage starts.
            on_phase: Forwarded to every PhasedApplier run.
        """
        self.options = options
        self.context = context
        self.config = config or NebulaConfig()
        self.transport_factory = transport_factory or KubectlTransport
        self.cloud = cloud or GcloudProvider()
        self.kind = kind or KindClusterManager()
        self.renderer = renderer or ManifestRenderer(context.working_dir)
        self.detector = detector or ToolDetector()
        self.waiter = waiter or ReadinessWaiter()
        self.on_stage = on_stage
        self.on_phase = on_phase

        self.management_transport: ClusterTransport | None = None
        self.target_transport: ClusterTransport | None = None
        self.reports: dict[str, ApplyReport] = {}
        self.sync_result: SyncResult | None = None

    @property
    def cancel(self) -> CancelToken:
        return self.waiter.cancel

    def required_tools(self) -> list[str]:
        tools = ["kubectl", "cdk8s"]
        if not self.options.skip_kind:
            tools.append("kind")
        if not self.options.skip_gke:
            tools.append("gcloud")
        return tools

    def run(self) -> BootstrapState:
        """Run every stage.

        Returns:
            Final state (stage DONE) with accumulated warnings.

        Raises:
            NebulaError: On any fatal failure; BootstrapAborted if cancelled.
        """
        if not self.options.project:
            raise NebulaError("--project is required")

        self.detector.require(self.required_tools())

        state = BootstrapState(management=self._management_handle())
        logger.info(
            "bootstrap_started",
            name=self.options.name,
            project=self.options.project,
            management_context=state.management.kube_context,
        )

        self._stage(state, BootstrapStage.LOCAL_CLUSTER_UP, self._local_cluster)
        self._stage(state, BootstrapStage.CREDENTIALS_SEEDED, self._seed_credentials)
        self._stage(state, BootstrapStage.MANAGEMENT_PLANE_APPLIED, self._management_plane)
        self._stage(state, BootstrapStage.PROVIDERS_HEALTHY, self._providers_healthy)

        if not self.options.skip_gke:
            self._stage(state, BootstrapStage.TARGET_CLUSTER_DISCOVERED, self._discover)
            self._stage(state, BootstrapStage.TARGET_CLUSTER_READY, self._target_ready)
            self._stage(state, BootstrapStage.CONTEXT_SWITCHED, self._switch_context)
            self._stage(state, BootstrapStage.WORKLOAD_PLANE_APPLIED, self._workload_plane)
            self._stage(state, BootstrapStage.GITOPS_SYNCED, self._gitops)
        else:
            logger.info("skipping_target_cluster")

        state.advance(BootstrapStage.DONE)
        logger.info("bootstrap_complete", warnings=len(state.warnings))
        return state

    # -------------------------------------------------------------------------
    # Stage plumbing
    # -------------------------------------------------------------------------

    def _check_cancelled(self, stage: BootstrapStage) -> None:
        if self.cancel.cancelled:
            raise BootstrapAborted(stage=stage.name)

    def _stage(
        self,
        state: BootstrapState,
        stage: BootstrapStage,
        action: Callable[[BootstrapState], None],
    ) -> None:
        self._check_cancelled(stage)
        if self.on_stage:
            self.on_stage(stage)
        logger.info("stage_started", stage=stage.value)
        try:
            action(state)
        except NebulaError as e:
            # A wait cut short by a signal surfaces as its own timeout error
            if self.cancel.cancelled and not isinstance(e, BootstrapAborted):
                raise BootstrapAborted(stage=stage.name) from e
            if e.stage is None:
                e.stage = stage.name
            raise
        # An interrupted stage is not complete even if its waits returned
        self._check_cancelled(stage)
        state.advance(stage)

    def _management_handle(self) -> ClusterHandle:
        if self.options.skip_kind:
            # Whatever kubectl currently points at
            return ClusterHandle(name=self.options.name)
        return ClusterHandle(
            name=self.options.name,
            kube_context=self.kind.context_name(self.options.name),
        )

    def _management(self, state: BootstrapState) -> ClusterTransport:
        if self.management_transport is None:
            self.management_transport = self.transport_factory(
                self.context.for_cluster(state.management)
            )
        return self.management_transport

    def _target(self, state: BootstrapState) -> ClusterHandle:
        if state.target is None:
            raise DiscoveryTimeoutError("No target cluster has been discovered")
        return state.target

    def _target_cluster(self) -> ClusterTransport:
        if self.target_transport is None:
            raise ContextSwitchError("Not switched to the target cluster")
        return self.target_transport

    def _applier(self, transport: ClusterTransport) -> PhasedApplier:
        return PhasedApplier(
            transport,
            waiter=self.waiter,
            policies=default_policies(self.config),
            dry_run=self.context.dry_run,
            on_phase=self.on_phase,
        )

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _local_cluster(self, state: BootstrapState) -> None:
        if self.options.skip_kind:
            logger.info("skipping_kind", reason="--skip-kind")
            return

        name = self.options.name
        transport = self._management(state)
        if self.kind.exists(name):
            logger.info("reusing_kind_cluster", name=name)
            result = transport.use_context(state.management.kube_context or "")
            if not result.ok:
                raise NebulaError(f"Failed to switch to kind cluster {name}: {result.message}")
            return

        logger.info("creating_kind_cluster", name=name)
        result = self.kind.create(name)
        if not result.ok:
            raise NebulaError(f"Failed to create kind cluster {name}: {result.message}")

    def _seed_credentials(self, state: BootstrapState) -> None:
        if self.options.skip_credentials:
            logger.info("skipping_credentials", reason="--skip-credentials")
            return
        CredentialSeeder(
            self._management(state),
            namespace=self.config.credentials_namespace,
            secret=self.config.credentials_secret,
            key=self.config.credentials_key,
        ).seed(self.options.credentials)

    def _management_plane(self, state: BootstrapState) -> None:
        app = self.options.app or self.config.bootstrap_app
        manifest_root = self.context.manifest_root
        self.renderer.render(app, manifest_root)

        files = find_manifest_files(MANAGEMENT_MANIFEST_GLOB, base_dir=manifest_root)
        if not files:
            raise NoManifestsError(f"No manifests rendered into {manifest_root}")

        report = self._applier(self._management(state)).apply(load_manifests(files))
        self.reports["management"] = report
        state.warnings.extend(report.warnings)

    def _providers_healthy(self, state: BootstrapState) -> None:
        # Providers were already waited on by the applier; functions were not
        result = self.waiter.wait(
            functions_healthy(self._management(state)),
            interval=self.config.function_interval,
            timeout=self.config.function_timeout,
            description="crossplane functions healthy",
        )
        if not result.ready and not result.cancelled:
            state.warn(
                f"Crossplane functions not healthy after {self.config.function_timeout:.0f}s, continuing"
            )

    def _discover(self, state: BootstrapState) -> None:
        discovery = ClusterDiscovery(
            self._management(state),
            waiter=self.waiter,
            default_project=self.options.project,
            interval=self.config.discovery_interval,
        )
        state.target = discovery.discover(timeout=self.config.discovery_timeout)

    def _target_ready(self, state: BootstrapState) -> None:
        target = self._target(state)
        discovery = ClusterDiscovery(self._management(state), default_project=self.options.project)

        def check() -> bool:
            if discovery.is_ready(target):
                return True
            return self.cloud.cluster_status(target) == RUNNING

        result = self.waiter.wait(
            check,
            interval=self.config.target_ready_interval,
            timeout=self.config.target_ready_timeout,
            description=f"cluster {target.name} ready",
        )
        if result.cancelled:
            raise BootstrapAborted(stage=BootstrapStage.TARGET_CLUSTER_READY.name)
        if not result.ready:
            raise ClusterNotReadyError(
                f"Cluster {target.name} not ready after {self.config.target_ready_timeout:.0f}s"
            )
        logger.info("target_cluster_ready", name=target.name, elapsed=round(result.elapsed_seconds))

    def _switch_context(self, state: BootstrapState) -> None:
        target = self._target(state)
        try:
            kube_context = self.cloud.get_credentials(target)
        except RuntimeError as e:
            raise ContextSwitchError(str(e)) from e

        state.target = target.with_context(kube_context)
        self.target_transport = self.transport_factory(self.context.for_cluster(state.target))
        result = self.target_transport.use_context(kube_context)
        if not result.ok:
            raise ContextSwitchError(f"Failed to switch to {kube_context}: {result.message}")
        logger.info("context_switched", context=kube_context)

    def _workload_plane(self, state: BootstrapState) -> None:
        transport = self._target_cluster()
        manifest_root = self.context.manifest_root
        if manifest_root.exists():
            shutil.rmtree(manifest_root)
        manifest_root.mkdir(parents=True, exist_ok=True)

        files = self.renderer.render_modules(self.config.workload_modules, manifest_root)
        if not files:
            state.warn("No workload modules found, nothing to apply on the target cluster")
            return

        # Each module renders into manifest_root/<module>/
        core_modules = set(self.config.core_workload_modules)
        core = [f for f in files if f.parent.name in core_modules]
        rest = [f for f in files if f.parent.name not in core_modules]

        if core:
            self._apply_tier(state, "workload-core", transport, core)
            if self.cancel.cancelled:
                return
            # Compositions in the remaining modules need healthy functions
            result = self.waiter.wait(
                functions_healthy(transport),
                interval=self.config.function_interval,
                timeout=self.config.function_timeout,
                description="target crossplane functions healthy",
            )
            if result.cancelled:
                return
            if not result.ready:
                state.warn(
                    f"Crossplane functions on the target cluster not healthy after "
                    f"{self.config.function_timeout:.0f}s, continuing"
                )

        if rest:
            self._apply_tier(state, "workload", transport, rest)

    def _apply_tier(
        self,
        state: BootstrapState,
        name: str,
        transport: ClusterTransport,
        files: list[Path],
    ) -> None:
        logger.info("applying_workload_tier", tier=name, files=len(files))
        report = self._applier(transport).apply(load_manifests(files))
        self.reports[name] = report
        state.warnings.extend(report.warnings)

    def _gitops(self, state: BootstrapState) -> None:
        driver = GitOpsSyncDriver(
            self._target_cluster(),
            waiter=self.waiter,
            namespace=self.config.gitops_namespace,
            controller=self.config.gitops_controller,
            controller_timeout=self.config.gitops_controller_timeout,
            interval=self.config.gitops_interval,
            refresh_pause=self.config.gitops_refresh_pause,
        )
        self.sync_result = driver.sync_and_wait_converged(
            self.config.gitops_application,
            timeout=self.config.gitops_timeout,
        )
        state.warnings.extend(self.sync_result.warnings)
