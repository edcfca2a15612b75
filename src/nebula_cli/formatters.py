"""CLI output formatting helpers.

Step banners go through click.echo; tables use rich.
"""

from __future__ import annotations

from collections.abc import Sequence

import click
from rich.console import Console
from rich.table import Table

from .bootstrap.gitops import SyncResult
from .bootstrap.state import BootstrapStage, BootstrapState
from .rollout.applier import ApplyReport
from .rollout.manifests import Manifest
from .rollout.phases import Phase, partition

console = Console()

STAGE_TITLES = {
    BootstrapStage.LOCAL_CLUSTER_UP: "Management Cluster",
    BootstrapStage.CREDENTIALS_SEEDED: "Cloud Credentials",
    BootstrapStage.MANAGEMENT_PLANE_APPLIED: "Management Plane",
    BootstrapStage.PROVIDERS_HEALTHY: "Crossplane Providers",
    BootstrapStage.TARGET_CLUSTER_DISCOVERED: "Discover Target Cluster",
    BootstrapStage.TARGET_CLUSTER_READY: "Wait for Target Cluster",
    BootstrapStage.CONTEXT_SWITCHED: "Switch Context",
    BootstrapStage.WORKLOAD_PLANE_APPLIED: "Workload Plane",
    BootstrapStage.GITOPS_SYNCED: "GitOps Sync",
}


def print_stage_banner(stage: BootstrapStage) -> None:
    """Print the heading for a bootstrap stage.

    Args:
        stage: Stage about to start
    """
    step = list(STAGE_TITLES).index(stage) + 1 if stage in STAGE_TITLES else 0
    title = STAGE_TITLES.get(stage, stage.value)
    click.echo(f"\n📋 Step {step}: {title}\n")


def print_phase_start(phase: Phase, count: int) -> None:
    click.echo(f"  → {phase.label}: {count} resource(s)")


def print_phase_plan(manifests: Sequence[Manifest]) -> None:
    """Print how manifests split across rollout phases.

    Args:
        manifests: Manifests about to be applied
    """
    buckets = partition(manifests)
    table = Table(title="Rollout plan")
    table.add_column("#", justify="right")
    table.add_column("Phase")
    table.add_column("Resources", justify="right")
    table.add_column("Kinds")

    for phase in Phase:
        bucket = buckets[phase]
        kinds = sorted({m.kind for m in bucket})
        table.add_row(
            str(phase.value),
            phase.label,
            str(len(bucket)),
            ", ".join(kinds) if kinds else "[dim]-[/dim]",
        )
    console.print(table)


def print_apply_report(report: ApplyReport) -> None:
    """Print the outcome of a phased apply.

    Args:
        report: Report returned by PhasedApplier.apply
    """
    table = Table(title="Dry run" if report.dry_run else "Applied")
    table.add_column("Phase")
    table.add_column("Resources", justify="right")
    table.add_column("Applied")
    table.add_column("Ready")

    for phase in report.phases:
        if report.dry_run or not phase.waits:
            ready = "[dim]-[/dim]"
        elif all(phase.waits.values()):
            ready = "[green]✓[/green]"
        else:
            ready = "[yellow]timed out[/yellow]"
        table.add_row(
            phase.phase.label,
            str(phase.resources),
            "[green]✓[/green]" if phase.applied else "[yellow]partial[/yellow]",
            ready,
        )
    console.print(table)
    print_warnings(report.warnings)


def print_warnings(warnings: Sequence[str]) -> None:
    if not warnings:
        return
    click.echo("WARNINGS:")
    for w in warnings:
        click.echo(f"  ⚠ {w}")


def print_bootstrap_summary(state: BootstrapState, sync: SyncResult | None = None) -> None:
    """Print the end-of-run summary.

    Args:
        state: Final bootstrap state
        sync: GitOps sync result, if the target cluster was bootstrapped
    """
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Management", state.management.kube_context or "(current context)")
    if state.target is not None:
        target = state.target
        table.add_row("Target", f"{target.name} ({target.project}/{target.location})")
        table.add_row("Context", target.kube_context or "-")
    if sync is not None:
        status = "[green]Synced[/green]" if sync.converged else f"[yellow]{sync.sync_status or 'unknown'}[/yellow]"
        table.add_row("GitOps", f"{sync.application}: {status}")
    table.add_row("Stages", str(len(state.completed)))

    click.echo("\n" + "=" * 50)
    if state.warnings:
        click.echo(f"✓ Bootstrap complete with {len(state.warnings)} warning(s)")
    else:
        click.echo("✓ Bootstrap complete!")
    console.print(table)
    click.echo("=" * 50 + "\n")
    print_warnings(state.warnings)
