"""TableForge CLI entry point."""

from pathlib import Path

import click

from tableforge.config import AppConfig
from tableforge.errors import MissingConfigurationError, TableForgeError
from tableforge.persistence import DatabaseConfig
from tableforge.services import Bootstrap, ServiceName


def _resolve_base_path() -> Path:
    """Project root, whether run from the repo root or from backend/."""
    cwd = Path.cwd()
    return cwd.parent if cwd.name == "backend" else cwd


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration YAML file (defaults to TABLEFORGE_CONFIG or config/tableforge.yaml).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None):
    """TableForge content backend bootstrap CLI."""
    if config_path is not None:
        config = AppConfig.load(config_path)
    else:
        config = AppConfig.from_env(_resolve_base_path())
    ctx.obj = Bootstrap(config)


@cli.command()
@click.pass_obj
def services(bootstrap: Bootstrap):
    """List registered services and whether each one is built."""
    for name in bootstrap.registry.names():
        if bootstrap.registry.is_transient(name):
            state = "transient"
        else:
            state = "cached" if bootstrap.registry.is_cached(name) else "lazy"
        click.echo(f"  {name.value:<18} {state}")


@cli.command()
@click.pass_obj
def extensions(bootstrap: Bootstrap):
    """List extensions found under customs/extensions."""
    try:
        found = bootstrap.get(ServiceName.EXTENSIONS)
    except MissingConfigurationError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    if not found:
        click.echo("No extensions found.")
        return
    for name, entry_point in found.items():
        click.echo(f"  {name:<20} {entry_point}")


@cli.command("check-config")
@click.option("--connect", is_flag=True, default=False, help="Also try to connect to the database.")
@click.pass_obj
def check_config(bootstrap: Bootstrap, connect: bool):
    """Verify the configuration needed to reach the database."""
    try:
        db_config = DatabaseConfig.from_config(bootstrap.config)
    except MissingConfigurationError as e:
        click.echo(click.style(f"Missing configuration: {', '.join(e.keys)}", fg="red"), err=True)
        raise SystemExit(1)

    scheme = db_config.url.split(":", 1)[0]
    click.echo(f"Database: {scheme}")

    if connect:
        try:
            bootstrap.get(ServiceName.DATABASE)
        except TableForgeError as e:
            click.echo(click.style(str(e), fg="red"), err=True)
            raise SystemExit(1)
        finally:
            bootstrap.close()
        click.echo(click.style("Connection OK", fg="green"))

    click.echo(click.style("Configuration is valid.", fg="green"))
