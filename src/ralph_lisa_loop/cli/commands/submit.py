"""Submission commands for both agents."""

from pathlib import Path
from typing import Tuple

import click

from ralph_lisa_loop.exceptions import RalphLisaError
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.models.session import SourceKind
from ralph_lisa_loop.services import submission_service


def _read_content(content: Tuple[str, ...], file: str) -> Tuple[str, SourceKind]:
    """Resolve the submission text from arguments, --file or piped stdin."""
    if file == "-":
        return click.get_text_stream("stdin").read(), SourceKind.STDIN
    if file:
        try:
            return Path(file).read_text(encoding="utf-8"), SourceKind.FILE
        except OSError as e:
            raise click.ClickException(f"Cannot read {file}: {e}")
    if content:
        return " ".join(content), SourceKind.INLINE

    stdin = click.get_text_stream("stdin")
    if not stdin.isatty():
        return stdin.read(), SourceKind.STDIN
    return "", SourceKind.INLINE


def _submit(store, agent: Agent, content: Tuple[str, ...], file: str) -> None:
    text, source_kind = _read_content(content, file)
    try:
        submission, session, policy = submission_service.submit(store, agent, text, source_kind)
    except RalphLisaError as e:
        raise click.ClickException(str(e))

    for violation in policy.violations:
        click.echo(f"Warning: {violation.message}", err=True)

    click.echo(
        f"Submitted [{submission.tag.value}] {submission.summary} "
        f"(round {submission.round}, step {submission.step})"
    )
    click.echo(f"Turn passed to {session.turn.display_name}. Round: {session.round}")


@click.command("submit-ralph")
@click.argument("content", nargs=-1)
@click.option("--file", "-f", "file", help="Read content from PATH, or '-' for stdin")
@click.pass_obj
def submit_ralph(store, content, file):
    """Submit Ralph's work: "[TAG] summary\\n\\ndetails"."""
    _submit(store, Agent.RALPH, content, file)


@click.command("submit-lisa")
@click.argument("content", nargs=-1)
@click.option("--file", "-f", "file", help="Read content from PATH, or '-' for stdin")
@click.pass_obj
def submit_lisa(store, content, file):
    """Submit Lisa's review: "[TAG] summary\\n\\ndetails"."""
    _submit(store, Agent.LISA, content, file)
