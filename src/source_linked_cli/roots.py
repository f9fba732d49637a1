"""Source root management commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import typer as t

from source_linked import Fail, Ok
from source_linked_cli.common import fail_exit, format_output, get_state, output_format_opt


if TYPE_CHECKING:
    from source_linked import Result, Settings


roots_cli = t.Typer(help="Source root management commands", no_args_is_help=True)

ID_HELP = "Root id (stable key shared with the project)"
NAME_HELP = "Display name (defaults to the id)"
DIR_HELP = "Directory the root points to on this machine"


def _save(ctx: t.Context, result: Result[Settings], message: str) -> None:
    state = get_state(ctx)
    match result.bind(lambda s: state.store.save(s).map(lambda _: s)):
        case Ok(value=settings):
            state.settings = settings
            t.echo(message)
        case Fail(reason=reason):
            fail_exit(reason)


@roots_cli.command("list")
def list_roots(ctx: t.Context, output_format: str = output_format_opt) -> None:
    """List defined roots and where they are bound on this machine."""
    settings = get_state(ctx).settings
    rows = [
        {
            "id": root.id,
            "name": root.label,
            "directory": settings.user.roots.get(root.id) or None,
        }
        for root in sorted(settings.project.roots, key=lambda r: r.id)
    ]
    if output_format != "text":
        t.echo(format_output(rows, output_format))
        return
    if not rows:
        t.echo("No source roots defined.")
        return
    for row in rows:
        t.echo(f"{row['id']}  ({row['name']})  -> {row['directory'] or '<unbound>'}")
    for directory, ids in settings.registry().find_conflicts().items():
        t.echo(f"Warning: roots {', '.join(ids)} are bound to the same directory {directory}")


@roots_cli.command("add")
def add_root(
    ctx: t.Context,
    root_id: Annotated[str, t.Argument(help=ID_HELP)],
    name: Annotated[str, t.Option("--name", "-n", help=NAME_HELP)] = "",
    directory: Annotated[str | None, t.Option("--dir", "-d", help=DIR_HELP)] = None,
) -> None:
    """Define a new source root."""
    result = get_state(ctx).settings.add_root(root_id, name, directory)
    _save(ctx, result, f"Added source root {root_id.strip()!r}")


@roots_cli.command("rename")
def rename_root(
    ctx: t.Context,
    root_id: Annotated[str, t.Argument(help=ID_HELP)],
    name: Annotated[str, t.Argument(help=NAME_HELP)],
) -> None:
    """Change the display name of a root."""
    result = get_state(ctx).settings.rename_root(root_id, name)
    _save(ctx, result, f"Renamed source root {root_id!r} -> {name!r}")


@roots_cli.command("remove")
def remove_root(ctx: t.Context, root_id: Annotated[str, t.Argument(help=ID_HELP)]) -> None:
    """Delete a root definition and its local directory binding."""
    result = get_state(ctx).settings.remove_root(root_id)
    _save(ctx, result, f"Removed source root {root_id!r}")


@roots_cli.command("bind")
def bind_root(
    ctx: t.Context,
    root_id: Annotated[str, t.Argument(help=ID_HELP)],
    directory: Annotated[str, t.Argument(help=DIR_HELP)],
) -> None:
    """Point a root at a directory on this machine."""
    result = get_state(ctx).settings.bind_root(root_id, directory)
    _save(ctx, result, f"Bound source root {root_id!r} -> {directory}")


@roots_cli.command("unbind")
def unbind_root(ctx: t.Context, root_id: Annotated[str, t.Argument(help=ID_HELP)]) -> None:
    """Forget this machine's directory for a root."""
    result = get_state(ctx).settings.unbind_root(root_id)
    _save(ctx, result, f"Unbound source root {root_id!r}")
