"""Bootstrap command for bringing up the nebula platform.

This module provides the `nebula bootstrap` command which creates the kind
management cluster, rolls out Crossplane, waits for the GKE cluster it
creates, and hands that cluster over to Argo CD.
"""

from __future__ import annotations

import signal
import sys
from typing import Any

import click

from ..bootstrap import BootstrapOptions, BootstrapOrchestrator
from ..cluster.context import ExecutionContext
from ..config import NebulaConfig
from ..errors import BootstrapAborted, NebulaError
from ..formatters import print_bootstrap_summary, print_phase_start, print_stage_banner
from ..rollout.readiness import CancelToken, ReadinessWaiter
from ..shared.logging import get_logger

logger = get_logger(__name__)

# Shell convention for termination by SIGINT
EXIT_INTERRUPTED = 130


def install_signal_handlers(cancel: CancelToken) -> dict[int, Any]:
    """Route SIGINT/SIGTERM to the cancel token.

    Returns:
        Previous handlers, for restore_signal_handlers.
    """

    def handle_signal(signum: int, frame: Any) -> None:
        logger.warning("bootstrap_interrupted", signal=signal.Signals(signum).name)
        cancel.cancel()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, handle_signal)
    return previous


def restore_signal_handlers(previous: dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


@click.command()
@click.option("--name", default=None, help="Management cluster name (default: from config)")
@click.option("--project", envvar="GCP_PROJECT", default=None, help="GCP project ID")
@click.option(
    "--credentials",
    type=click.Path(),
    default=None,
    help="GCP credentials JSON (default: gcloud ADC)",
)
@click.option("--skip-kind", is_flag=True, help="Use the current kubectl context as management cluster")
@click.option("--skip-credentials", is_flag=True, help="Do not seed the credentials secret")
@click.option("--skip-gke", is_flag=True, help="Stop after the management plane is healthy")
@click.option("--app", default=None, help="cdk8s app for the management plane")
@click.option("--manifest-dir", default=None, help="Directory synthesized manifests go to")
@click.pass_context
def bootstrap(
    ctx: click.Context,
    name: str | None,
    project: str | None,
    credentials: str | None,
    skip_kind: bool,
    skip_credentials: bool,
    skip_gke: bool,
    app: str | None,
    manifest_dir: str | None,
) -> None:
    """Bring up the management cluster, target cluster and GitOps.

    Examples:

        # Full bootstrap using gcloud ADC
        nebula bootstrap --project my-project

        # Management plane only, on the current cluster
        nebula bootstrap --project my-project --skip-kind --skip-gke

        # Explicit service account key
        nebula bootstrap --project my-project --credentials ./sa.json
    """
    config: NebulaConfig = ctx.obj.get("config") or NebulaConfig()

    if not project:
        click.echo("Error: --project is required (or set GCP_PROJECT)", err=True)
        sys.exit(1)

    options = BootstrapOptions(
        project=project,
        name=name or config.cluster_name,
        credentials=credentials,
        skip_kind=skip_kind,
        skip_credentials=skip_credentials,
        skip_gke=skip_gke,
        app=app,
    )
    context = ExecutionContext.create(manifest_dir=manifest_dir or config.manifest_dir)

    cancel = CancelToken()
    orchestrator = BootstrapOrchestrator(
        options,
        context,
        config=config,
        waiter=ReadinessWaiter(cancel),
        on_stage=print_stage_banner,
        on_phase=print_phase_start,
    )

    click.echo("\n🚀 nebula bootstrap\n")
    previous = install_signal_handlers(cancel)
    try:
        state = orchestrator.run()
    except BootstrapAborted as e:
        click.echo(f"\n✗ Interrupted during {e.stage or 'bootstrap'}", err=True)
        sys.exit(EXIT_INTERRUPTED)
    except NebulaError as e:
        click.echo(f"\n✗ Error: {e.message}", err=True)
        if e.stage:
            click.echo(f"  Stage: {e.stage}", err=True)
        sys.exit(1)
    finally:
        restore_signal_handlers(previous)

    print_bootstrap_summary(state, orchestrator.sync_result)
