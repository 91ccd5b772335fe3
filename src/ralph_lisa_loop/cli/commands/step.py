"""Step transition command."""

import click

from ralph_lisa_loop.exceptions import RalphLisaError
from ralph_lisa_loop.services import step_service


@click.command()
@click.argument("name", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Enter the step without consensus")
@click.pass_obj
def step(store, name, force):
    """Enter a new step NAME once both agents agree."""
    try:
        session = step_service.advance_step(store, " ".join(name), force=force)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.ClickException(str(e))

    if force:
        click.echo("Warning: step entered with --force", err=True)
    click.echo(f"Entered step: {session.step} (round {session.round})")
