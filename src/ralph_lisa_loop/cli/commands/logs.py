"""Transcript log commands."""

import click

from ralph_lisa_loop.services.transcript_service import list_logs, read_log


@click.group(invoke_without_command=True)
@click.pass_context
def logs(ctx):
    """List pane transcripts (live and archived)."""
    if ctx.invoked_subcommand is not None:
        return

    store = ctx.obj
    live, archived = list_logs(store.state_dir)
    if not live and not archived:
        click.echo("No transcript logs found")
        return

    if live:
        click.echo("Live (current session):")
        for path in live:
            click.echo(f"  {path.name}  ({path.stat().st_size} bytes)")
    if archived:
        click.echo("Archived (previous sessions):")
        for path in archived:
            click.echo(f"  {path.name}  ({path.stat().st_size} bytes)")


@logs.command()
@click.argument("name", required=False)
@click.pass_obj
def cat(store, name):
    """Print transcript NAME, or all live transcripts."""
    content = read_log(store.state_dir, name)
    if content is None:
        raise click.ClickException(f"Transcript not found: {name}" if name else "No live transcripts")
    click.echo(content)
