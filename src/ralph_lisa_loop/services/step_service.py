"""Step transition gate and the read-only consensus/next-step inspections."""

import logging
from typing import List, Optional

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.exceptions import StepBlockedError
from ralph_lisa_loop.models.agent import AGENT_RULES, CONSENSUS_PAIRS, Agent, Tag
from ralph_lisa_loop.models.session import Session
from ralph_lisa_loop.services import policy_service

logger = logging.getLogger(__name__)


def _label(tag: Optional[Tag]) -> str:
    return tag.value if tag else "none"


def is_consensus(ralph_tag: Optional[Tag], lisa_tag: Optional[Tag]) -> bool:
    return (ralph_tag, lisa_tag) in CONSENSUS_PAIRS


def advance_step(store: SessionStore, name: str, force: bool = False) -> Session:
    """Enter a new step, resetting the round to 1.

    Unless ``force`` is set, the latest recorded tags must be one of the
    accepted (Ralph, Lisa) pairs. Tags come from the canonical slot headers
    only, never from text inside a submission body.

    Raises:
        NotInitializedError: no session
        ValueError: empty step name
        StepBlockedError: tags do not allow the transition
    """
    store.require()
    name = name.strip()
    if not name:
        raise ValueError("Step name must not be empty")

    ralph_tag = store.latest_tag(Agent.RALPH)
    lisa_tag = store.latest_tag(Agent.LISA)
    if not force and not is_consensus(ralph_tag, lisa_tag):
        raise StepBlockedError(_label(ralph_tag), _label(lisa_tag))
    if force and not is_consensus(ralph_tag, lisa_tag):
        logger.warning(
            f"Forcing step '{name}' without consensus "
            f"(ralph=[{_label(ralph_tag)}], lisa=[{_label(lisa_tag)}])"
        )

    store.set_step(name)
    store.set_round(1)
    store.append_step_marker(name)
    logger.info(f"Entered step: {name}")
    return store.load()


def check_consensus(store: SessionStore) -> List[str]:
    """Report why the latest tags do not amount to consensus. Empty means consensus."""
    store.require()
    ralph_tag = store.latest_tag(Agent.RALPH)
    lisa_tag = store.latest_tag(Agent.LISA)
    if is_consensus(ralph_tag, lisa_tag):
        return []
    return [
        f"Ralph's latest is [{_label(ralph_tag)}], Lisa's latest is [{_label(lisa_tag)}]: "
        "need [CONSENSUS]/[CONSENSUS], [CONSENSUS]/[PASS] or [PASS]/[CONSENSUS]."
    ]


def check_policy(store: SessionStore, agent: Agent) -> List[str]:
    """Re-run the Policy Gate against an agent's latest submission."""
    entry = store.latest_entry(agent)
    if entry is None or not entry.content:
        return []
    name = AGENT_RULES[agent].display_name
    return [f"{name}: {v.message}" for v in policy_service.check(agent, entry.tag, entry.content)]


def check_next_step(store: SessionStore) -> List[str]:
    """Consensus plus policy on both latest submissions, aggregated into one report."""
    issues = check_consensus(store)
    for agent in Agent:
        issues.extend(check_policy(store, agent))
    return issues
