"""Page commands for pager CLI.

Commands:
- show: Print a page from the page database
"""

from __future__ import annotations

import click

from pager.cli.config import require_config


@click.command()
@click.argument("page_name")
@click.option(
    "--combine",
    "-c",
    is_flag=True,
    help="Combine multiple pages with the same name (otherwise only show one).",
)
def show(page_name: str, combine: bool) -> None:
    """Show the page named PAGE_NAME."""
    from rich.console import Console
    from rich.markdown import Markdown

    from pager.pages import get_page, page_dirs

    config = require_config()
    dirs = page_dirs(config.download_path, config.repositories, config.local_paths)
    page = get_page(page_name, dirs, combine=combine)

    Console().print(Markdown(page))
    click.echo("")
