import logging
import sys
from pathlib import Path

import click
from kubernetes.client import ApiException
from rich.console import Console
from rich.markup import escape

from . import handlers
from .config import (
    create_default_config,
    get_default_config_path,
    load_config,
    parse_namespace_mappings,
)
from ..errors import ConfigError, RbacMigrateError


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the rbac-migrate config file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, config_path, verbose) -> None:
    """Migrate cluster-scoped RBAC bindings along with their namespaces."""
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj["CONFIG_PATH"] = config_path if config_path else get_default_config_path()
    try:
        ctx.obj["CONFIG"] = load_config(ctx.obj["CONFIG_PATH"])
    except ConfigError as e:
        Console(stderr=True).print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)


def _run(action, *args, **kwargs) -> None:
    try:
        action(*args, **kwargs)
    except RbacMigrateError as e:
        Console(stderr=True).print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)
    except ApiException as e:
        Console(stderr=True).print(f"[red]❌ Kubernetes API error: {e.status} {escape(str(e.reason))}[/red]")
        sys.exit(1)


@main.command(help="Show cluster RBAC objects relevant to namespaces.")
@click.option("-n", "--namespace", "namespaces", multiple=True, required=True)
@click.pass_context
def inspect(ctx, namespaces: tuple[str, ...]) -> None:
    _run(handlers.inspect_namespaces, ctx.obj["CONFIG"], list(namespaces))


@main.command(help="Collect cluster RBAC objects of namespaces from the source cluster.")
@click.option("-n", "--namespace", "namespaces", multiple=True, required=True)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="File to write the collected objects to (default: stdout).",
)
@click.pass_context
def collect(ctx, namespaces: tuple[str, ...], output: Path) -> None:
    _run(handlers.collect_namespaces, ctx.obj["CONFIG"], list(namespaces), output)


@main.command(help="Apply collected cluster RBAC objects to the destination cluster.")
@click.argument("path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option(
    "-m",
    "--map",
    "mappings",
    multiple=True,
    help="Namespace mapping as source=destination. May be repeated.",
)
@click.option("--dry-run", is_flag=True, help="Print the remapped objects instead of applying them.")
@click.pass_context
def apply(ctx, path: Path, mappings: tuple[str, ...], dry_run: bool) -> None:
    config = ctx.obj["CONFIG"]

    def run() -> None:
        namespace_mappings = parse_namespace_mappings(mappings, config["namespace_mappings"])
        if not namespace_mappings:
            raise ConfigError("No namespace mappings given; use --map or namespace_mappings")
        handlers.apply_collected(config, path, namespace_mappings, dry_run=dry_run)

    _run(run)


@main.group(name="config")
def config_group() -> None:
    """Manage rbac-migrate configuration."""
    pass


@config_group.command(name="init")
@click.pass_context
def config_init(ctx) -> None:
    """Write a default configuration file."""
    console = Console()
    path = ctx.obj["CONFIG_PATH"]
    if path.exists():
        console.print(f"Configuration already exists at [cyan]{path}[/cyan].")
        return
    create_default_config(path)
    console.print(f"[green]✅ Default configuration created at {path}[/green]")


if __name__ == "__main__":
    main()
