"""Apply command: phased rollout of already-synthesized manifests."""

from __future__ import annotations

import sys

import click

from ..cluster.context import ExecutionContext
from ..cluster.prerequisites import ToolDetector
from ..cluster.transport import KubectlTransport
from ..config import NebulaConfig
from ..errors import NebulaError, NoManifestsError
from ..formatters import print_apply_report, print_phase_plan, print_phase_start
from ..rollout.applier import PhasedApplier
from ..rollout.manifests import find_manifest_files, load_manifests
from ..rollout.phases import default_policies
from ..rollout.readiness import CancelToken, ReadinessWaiter
from ..shared.paths import DEFAULT_MANIFEST_GLOB
from .bootstrap import EXIT_INTERRUPTED, install_signal_handlers, restore_signal_handlers


@click.command()
@click.option(
    "--file",
    "-f",
    "pattern",
    default=DEFAULT_MANIFEST_GLOB,
    show_default=True,
    help="Glob of manifest files to apply",
)
@click.option("--dry-run", is_flag=True, help="Validate with kubectl --dry-run=client, no waits")
@click.option("--context", "kube_context", default=None, help="kubectl context (default: current)")
@click.pass_context
def apply(ctx: click.Context, pattern: str, dry_run: bool, kube_context: str | None) -> None:
    """Apply manifests in dependency order.

    CRDs and namespaces go first, then controllers, Crossplane providers,
    provider configs and finally everything else, with readiness waits in
    between.
    """
    config: NebulaConfig = ctx.obj.get("config") or NebulaConfig()
    context = ExecutionContext.create(kube_context=kube_context, dry_run=dry_run)

    try:
        ToolDetector().require(["kubectl"])

        files = find_manifest_files(pattern, base_dir=context.working_dir)
        if not files:
            raise NoManifestsError(f"No manifest files found matching {pattern}")

        manifests = load_manifests(files)
        click.echo(f"Found {len(manifests)} resource(s) in {len(files)} file(s)")
        print_phase_plan(manifests)

        cancel = CancelToken()
        applier = PhasedApplier(
            KubectlTransport(context),
            waiter=ReadinessWaiter(cancel),
            policies=default_policies(config),
            dry_run=dry_run,
            on_phase=print_phase_start,
        )
        previous = install_signal_handlers(cancel)
        try:
            report = applier.apply(manifests)
        finally:
            restore_signal_handlers(previous)
    except NebulaError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    print_apply_report(report)
    if report.cancelled:
        click.echo("✗ Interrupted", err=True)
        sys.exit(EXIT_INTERRUPTED)
    click.echo("✓ Dry run complete" if dry_run else "✓ Apply complete")
