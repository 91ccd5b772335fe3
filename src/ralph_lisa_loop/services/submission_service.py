"""Submission protocol: validate an agent's contribution, record it and pass the turn."""

import logging
from typing import Optional, Tuple

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.exceptions import (
    EmptySubmissionError,
    InvalidTagError,
    PolicyRejectedError,
    WrongTurnError,
)
from ralph_lisa_loop.models.agent import AGENT_RULES, Agent
from ralph_lisa_loop.models.policy import PolicyMode, PolicyResult
from ralph_lisa_loop.models.session import Session, SourceKind, Submission
from ralph_lisa_loop.services import policy_service
from ralph_lisa_loop.utils.text import (
    extract_summary,
    extract_tag,
    normalize_content,
    split_first_line,
    time_short,
    timestamp,
)

logger = logging.getLogger(__name__)


def submit(
    store: SessionStore,
    agent: Agent,
    content: str,
    source_kind: SourceKind = SourceKind.INLINE,
    policy_mode: Optional[PolicyMode] = None,
) -> Tuple[Submission, Session, PolicyResult]:
    """Record a submission from ``agent`` and hand the turn to the other agent.

    Every check runs before the first write, so a rejected submission leaves the
    session exactly as it was. On success the slot, history, last action and
    round are written first and the turn flag last: the watcher only polls
    turn.txt, so by the time it sees the flip everything else is in place.

    Returns:
        The recorded submission, the updated session and the policy result
        (which carries warn-mode violations for display).

    Raises:
        NotInitializedError, EmptySubmissionError, WrongTurnError,
        InvalidTagError, PolicyRejectedError
    """
    store.require()
    rules = AGENT_RULES[agent]

    content = normalize_content(content)
    if not content:
        raise EmptySubmissionError()

    session = store.load()
    if session.turn is not agent:
        raise WrongTurnError(agent.value, session.turn.value)

    tag = extract_tag(content)
    if tag is None or tag not in rules.allowed_tags:
        first_line, _ = split_first_line(content)
        raise InvalidTagError(agent.value, first_line, rules.ordered_tags())

    policy = policy_service.run_check(agent, tag, content, mode=policy_mode)
    if not policy.allowed:
        raise PolicyRejectedError(agent.value, tag.value, policy.violations)

    _, body = split_first_line(content)
    submission = Submission(
        agent=agent,
        tag=tag,
        summary=extract_summary(content),
        body=body,
        content=content,
        round=session.round,
        step=session.step,
        timestamp=timestamp(),
        source_kind=source_kind,
    )

    store.write_slot(submission)
    store.append_history(submission)
    last_action = f"[{tag.value}] {submission.summary} (by {rules.display_name}, {time_short()})"
    store.set_last_action(last_action)

    next_round = session.round + 1 if rules.advances_round else session.round
    if next_round != session.round:
        store.set_round(next_round)
    store.set_turn(agent.other)

    logger.info(
        f"{rules.display_name} submitted [{tag.value}] in round {session.round}, "
        f"turn -> {agent.other.value}"
    )
    updated = session.model_copy(
        update={"turn": agent.other, "round": next_round, "last_action": last_action}
    )
    return submission, updated, policy
