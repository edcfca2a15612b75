"""Destroy command: tear down the kind management cluster.

The GKE cluster is owned by Crossplane; delete its claim before destroying
the management cluster, or it keeps running unmanaged.
"""

from __future__ import annotations

import sys

import click

from ..cluster.kind import KindClusterManager
from ..config import NebulaConfig


@click.command()
@click.option("--name", default=None, help="Management cluster name (default: from config)")
@click.option("--force", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def destroy(ctx: click.Context, name: str | None, force: bool) -> None:
    """Delete the kind management cluster."""
    config: NebulaConfig = ctx.obj.get("config") or NebulaConfig()
    name = name or config.cluster_name
    kind = KindClusterManager()

    if not kind.exists(name):
        click.echo(f"No kind cluster named '{name}'. Nothing to do.")
        return

    if not force:
        click.echo("Any GKE cluster Crossplane manages from it will no longer be reconciled.")
        if not click.confirm(f"Delete kind cluster '{name}'?"):
            return

    result = kind.delete(name)
    if result.ok:
        click.echo(f"✓ Cluster '{name}' deleted.")
    else:
        click.echo(f"✗ {result.message}", err=True)
        sys.exit(1)
