"""Session lifecycle and inspection commands."""

import click

from ralph_lisa_loop.exceptions import RalphLisaError
from ralph_lisa_loop.services import session_service


@click.command()
@click.argument("task", nargs=-1)
@click.pass_obj
def init(store, task):
    """Start a new session for TASK (replaces any existing one)."""
    try:
        session = session_service.init_session(store, " ".join(task))
    except OSError as e:
        raise click.ClickException(f"Failed to initialize session: {e}")

    click.echo(f"Session initialized in {store.state_dir}")
    click.echo(f"Task: {session.task}")
    click.echo(f"Step: {session.step} | Round: {session.round} | Turn: {session.turn.value}")


@click.command("whose-turn")
@click.pass_obj
def whose_turn(store):
    """Print whose turn it is (ralph or lisa)."""
    try:
        click.echo(session_service.whose_turn(store).value)
    except RalphLisaError as e:
        raise click.ClickException(str(e))


@click.command()
@click.pass_obj
def status(store):
    """Show task, round, step, turn and the last action."""
    info = session_service.get_status(store)
    if info is None:
        click.echo("Not initialized")
        return

    click.echo(f"Task:        {info['task']}")
    click.echo(f"Step:        {info['step']}")
    click.echo(f"Round:       {info['round']}")
    click.echo(f"Turn:        {info['turn']}")
    click.echo(f"Last action: {info['last_action']}")


@click.command()
@click.argument("file")
@click.pass_obj
def read(store, file):
    """Print a session file such as work.md or review.md."""
    try:
        content = session_service.read_session_file(store, file)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    if content is None:
        raise click.ClickException(f"File not found: {file}")
    click.echo(content, nl=not content.endswith("\n"))


@click.command()
@click.pass_obj
def history(store):
    """Print the full collaboration history."""
    try:
        content = session_service.get_history(store)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    if not content:
        click.echo("(No history yet)")
        return
    click.echo(content, nl=not content.endswith("\n"))


@click.command()
@click.argument("name", required=False)
@click.pass_obj
def archive(store, name):
    """Copy the session to .dual-agent-archive/NAME (default: timestamp)."""
    try:
        dest = session_service.archive_session(store, name)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    except OSError as e:
        raise click.ClickException(f"Failed to archive session: {e}")
    click.echo(f"Session archived to {dest}")


@click.command()
@click.pass_obj
def clean(store):
    """Remove the session directory."""
    if session_service.clean_session(store):
        click.echo(f"Removed {store.state_dir}")
    else:
        click.echo("Nothing to clean")
