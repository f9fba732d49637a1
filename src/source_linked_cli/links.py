"""Import, reimport, relink and status commands."""

from __future__ import annotations

from typing import Annotated

import typer as t

from source_linked_cli.common import (
    fail_exit,
    format_output,
    get_state,
    output_format_opt,
    parse_managed,
    unwrap_or_exit,
)


SOURCE_HELP = "External source file"
MANAGED_HELP = "Managed file path (e.g. Assets/Models/x.fbx)"


def register(cli: t.Typer) -> None:
    """Attach the link commands to the main application."""

    @cli.command("import")
    def import_source(
        ctx: t.Context,
        source: Annotated[str, t.Argument(help=SOURCE_HELP)],
        dest_dir: Annotated[
            str | None, t.Argument(help="Managed folder to copy into (default: tree root)")
        ] = None,
        overwrite: Annotated[
            bool, t.Option("--overwrite", help="Replace an existing file instead of renaming")
        ] = False,
    ) -> None:
        """Copy an external file into the managed tree and link it."""
        state = get_state(ctx)
        folder = parse_managed(state, dest_dir or state.host.marker)
        report = unwrap_or_exit(state.service.import_file(source, folder, overwrite=overwrite))
        link = report.link
        t.echo(f"Imported {report.managed_path} <- {report.source}")
        if not link.root_id:
            t.echo("Warning: no source root matched, the link only stores the absolute path.")

    @cli.command("reimport")
    def reimport(
        ctx: t.Context,
        paths: Annotated[list[str], t.Argument(help=MANAGED_HELP)],
    ) -> None:
        """Refresh managed files whose source content changed."""
        state = get_state(ctx)
        managed = [parse_managed(state, p) for p in paths]
        summary = state.service.reimport_many(managed)
        for reason in summary.failures:
            t.echo(f"Error: {reason}", err=True)
        t.echo(f"Reimport done. {summary}")
        if summary.failed:
            raise t.Exit(1)

    @cli.command("relink")
    def relink(
        ctx: t.Context,
        path: Annotated[str, t.Argument(help=MANAGED_HELP)],
        source: Annotated[str, t.Argument(help=SOURCE_HELP)],
    ) -> None:
        """Point a managed file at another external file."""
        state = get_state(ctx)
        plan = unwrap_or_exit(state.service.relink(parse_managed(state, path), source))
        t.echo(f"{plan.outcome}: {plan.managed_path} <- {plan.source}")

    @cli.command("status")
    def status(
        ctx: t.Context,
        path: Annotated[str, t.Argument(help=MANAGED_HELP)],
        output_format: str = output_format_opt,
    ) -> None:
        """Show where a managed file's source is and whether it changed."""
        state = get_state(ctx)
        info = unwrap_or_exit(state.service.status(parse_managed(state, path)))
        data = {
            "managed_path": info.managed_path.value,
            "source": info.source.display,
            "source_exists": info.source_exists,
            "up_to_date": info.up_to_date,
            "link": info.link.to_dict(),
        }
        if output_format != "text":
            t.echo(format_output(data, output_format))
            return
        match info.up_to_date:
            case None:
                fail_exit(f"Source file not found: {info.source}")
            case True:
                state_text = "up to date"
            case False:
                state_text = "source changed"
        t.echo(f"{info.managed_path} <- {info.source} ({state_text})")
