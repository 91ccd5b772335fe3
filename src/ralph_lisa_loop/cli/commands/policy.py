"""Standalone policy and consensus inspection commands.

These never change the session and exit non-zero on any issue, whatever
RL_POLICY_MODE says.
"""

from typing import List

import click

from ralph_lisa_loop.exceptions import RalphLisaError
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.services import step_service


def _report(issues: List[str], ok_message: str) -> None:
    if not issues:
        click.echo(ok_message)
        return
    for issue in issues:
        click.echo(f"- {issue}", err=True)
    raise click.exceptions.Exit(1)


@click.group()
def policy():
    """Check submissions against the policy rules."""
    pass


@policy.command()
@click.argument("agent", type=click.Choice([a.value for a in Agent]))
@click.pass_obj
def check(store, agent):
    """Check AGENT's latest submission."""
    agent = Agent(agent)
    try:
        store.require()
        if store.latest_entry(agent) is None:
            raise click.ClickException(f"No submission from {agent.display_name} yet")
        issues = step_service.check_policy(store, agent)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    _report(issues, f"{agent.display_name}: no policy issues")


@policy.command("check-consensus")
@click.pass_obj
def check_consensus(store):
    """Check whether the latest tags allow a step transition."""
    try:
        issues = step_service.check_consensus(store)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    _report(issues, "Consensus reached")


@policy.command("check-next-step")
@click.pass_obj
def check_next_step(store):
    """Check consensus and both latest submissions before moving on."""
    try:
        issues = step_service.check_next_step(store)
    except RalphLisaError as e:
        raise click.ClickException(str(e))
    _report(issues, "Ready for next step")
