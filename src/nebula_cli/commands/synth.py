"""Synth command: render a cdk8s app to manifests."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..bootstrap.render import ManifestRenderer
from ..config import NebulaConfig
from ..errors import NebulaError


@click.command()
@click.option("--app", default=None, help="cdk8s app file (default: from config)")
@click.option("--output", "-o", default=None, help="Output directory (default: from config)")
@click.pass_context
def synth(ctx: click.Context, app: str | None, output: str | None) -> None:
    """Synthesize Kubernetes manifests with cdk8s."""
    config: NebulaConfig = ctx.obj.get("config") or NebulaConfig()
    app = app or config.bootstrap_app
    output_dir = Path(output or config.manifest_dir)

    renderer = ManifestRenderer(Path.cwd())
    try:
        files = renderer.render(app, output_dir)
    except NebulaError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    click.echo(f"✓ Synthesized {len(files)} file(s) into {output_dir}")
    for path in files:
        click.echo(f"  - {path.name}")
