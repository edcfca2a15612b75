"""CLI main entry point."""

from __future__ import annotations

import json
import sys
from dataclasses import fields

import click

from .commands.apply import apply
from .commands.bootstrap import bootstrap
from .commands.destroy import destroy
from .commands.synth import synth
from .config import NebulaConfig, get_config_path, load_config
from .shared.logging import configure_logging


def _log_level(verbose: int, quiet: bool) -> str:
    if quiet:
        return "warning"
    if verbose:
        return "debug"
    return "info"


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    envvar="NEBULA_LOG_FILE",
    help="Also write logs to this file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    verbose: int,
    quiet: bool,
    log_json: bool,
    log_file: str | None,
) -> None:
    """nebula: bootstrap a Crossplane management cluster and a GitOps-managed GKE cluster."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    configure_logging(level=_log_level(verbose, quiet), log_file=log_file, json_output=log_json)

    try:
        ctx.obj["config"] = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


cli.add_command(bootstrap)
cli.add_command(apply)
cli.add_command(synth)
cli.add_command(destroy)


@cli.command()
def version() -> None:
    """Show version."""
    from . import __version__

    click.echo(f"nebula {__version__}")


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool) -> None:
    """Show effective configuration and where each value came from."""
    loaded: NebulaConfig = ctx.obj["config"]
    keys = [f.name for f in fields(NebulaConfig) if not f.name.startswith("_")]

    if json_output:
        data = {key: getattr(loaded, key) for key in keys}
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("nebula configuration")
    click.echo(f"File: {ctx.obj['config_path'] or get_config_path()}\n")
    for key in keys:
        value = getattr(loaded, key)
        if isinstance(value, list):
            value = ", ".join(value)
        click.echo(f"  {key}: {value}  ({loaded.get_source(key)})")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
