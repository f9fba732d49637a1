"""Command line interface for source-linked files."""

from __future__ import annotations

from typing import Annotated

import typer as t

from source_linked_cli import links
from source_linked_cli.common import PROJECT_CMDS, PROJECT_HELP, load_state, setup_logging, verbose_opt
from source_linked_cli.roots import roots_cli


cli = t.Typer(
    name="source-linked",
    help="Link external source files to managed copies and keep them in sync.",
    no_args_is_help=True,
)
cli.add_typer(roots_cli, name="roots")
links.register(cli)


@cli.callback()
def main(
    ctx: t.Context,
    project: Annotated[str | None, t.Option(*PROJECT_CMDS, help=PROJECT_HELP)] = None,
    verbose: bool = verbose_opt,
) -> None:
    """Load the project's settings before running a command."""
    if not verbose:
        setup_logging()
    ctx.obj = load_state(project)


__all__ = ["cli"]
