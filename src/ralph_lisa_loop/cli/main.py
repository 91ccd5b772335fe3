"""Main CLI entry point for Ralph-Lisa Loop."""

from pathlib import Path

import click

from ralph_lisa_loop import __version__
from ralph_lisa_loop.cli.commands.logs import logs
from ralph_lisa_loop.cli.commands.policy import policy
from ralph_lisa_loop.cli.commands.session import archive, clean, history, init, read, status, whose_turn
from ralph_lisa_loop.cli.commands.step import step
from ralph_lisa_loop.cli.commands.submit import submit_lisa, submit_ralph
from ralph_lisa_loop.cli.commands.watch import watch
from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.constants import PROJECT_DIR_ENV
from ralph_lisa_loop.utils.logging import resolve_level, setup_logging


@click.group()
@click.version_option(__version__, prog_name="ralph-lisa")
@click.option(
    "--project-dir",
    envvar=PROJECT_DIR_ENV,
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory holding .dual-agent/ (default: current directory)",
)
@click.pass_context
def cli(ctx, project_dir):
    """Ralph-Lisa Loop - turn-based collaboration between two CLI agents."""
    setup_logging(resolve_level("WARNING"))
    ctx.obj = SessionStore(project_dir)


# Register commands
cli.add_command(init)
cli.add_command(whose_turn)
cli.add_command(submit_ralph)
cli.add_command(submit_lisa)
cli.add_command(status)
cli.add_command(read)
cli.add_command(step)
cli.add_command(history)
cli.add_command(archive)
cli.add_command(clean)
cli.add_command(policy)
cli.add_command(watch)
cli.add_command(logs)


if __name__ == "__main__":
    cli()
