"""Command-line interface for pager.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Re-clone the configured page repositories
- show: Show a page
- completions: Print a shell completion script
- config-path: Print the config file location
"""

from __future__ import annotations

import logging

import click

from pager import __version__
from pager.cli.config import (
    ensure_config_file,
    get_config_dir,
    get_config_file,
    load_config,
    require_config,
)
from pager.cli.show import show
from pager.cli.sync import sync

SHELLS = ("bash", "zsh", "fish")


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send pager's log records to stderr at the requested verbosity."""
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    pager_logger = logging.getLogger("pager")
    if not pager_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        pager_logger.addHandler(handler)
    pager_logger.setLevel(level)
    pager_logger.propagate = False


@click.group()
@click.version_option(version=__version__, prog_name="pager")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
def cli(verbose: bool, quiet: bool) -> None:
    """Pager - a personal page/note viewer.

    Pages are markdown files collected from git repositories (see 'sync')
    and local directories listed in the config file.
    """
    configure_logging(verbose=verbose, quiet=quiet)


@click.command()
@click.argument("shell", type=click.Choice(SHELLS))
@click.pass_context
def completions(ctx: click.Context, shell: str) -> None:
    """Print the completion script for SHELL."""
    from click.shell_completion import get_completion_class

    comp_cls = get_completion_class(shell)
    if comp_cls is None:
        raise click.UsageError(f"Unsupported shell: {shell}")
    root = ctx.find_root()
    prog_name = root.info_name or "pager"
    complete_var = f"_{prog_name.replace('-', '_').upper()}_COMPLETE"
    click.echo(comp_cls(root.command, {}, prog_name, complete_var).source())


@click.command("config-path")
def config_path() -> None:
    """Print the config file location (creating a default one if needed)."""
    click.echo(str(ensure_config_file()))


# Sync commands
cli.add_command(sync)

# Page commands
cli.add_command(show)

# Setup commands
cli.add_command(completions)
cli.add_command(config_path)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "configure_logging",
    "ensure_config_file",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "require_config",
]
