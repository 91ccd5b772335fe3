"""Exceptions raised by the turn-coordination protocol.

Every error here is fatal to the command that raised it and leaves the session
untouched: services run all of their checks before writing anything.
"""

from typing import List, Optional


class RalphLisaError(Exception):
    """Base class for protocol errors surfaced to the CLI."""

    pass


class NotInitializedError(RalphLisaError):
    """No session directory exists in the project."""

    def __init__(self, state_dir: Optional[str] = None):
        message = 'Session not initialized. Run: ralph-lisa init "task description"'
        if state_dir:
            message = f"{message} (looked in {state_dir})"
        super().__init__(message)


class EmptySubmissionError(RalphLisaError):
    """Submission content is empty after normalization."""

    def __init__(self):
        super().__init__('Submission is empty. Format: "[TAG] summary\\n\\ndetails..."')


class WrongTurnError(RalphLisaError):
    """The submitting agent does not hold the turn."""

    def __init__(self, agent: str, turn: str):
        self.agent = agent
        self.turn = turn
        super().__init__(
            f"It's {turn.capitalize()}'s turn, not {agent.capitalize()}'s. "
            "Check with: ralph-lisa whose-turn"
        )


class InvalidTagError(RalphLisaError):
    """First line does not start with a tag the agent may use."""

    def __init__(self, agent: str, first_line: str, valid_tags: List[str]):
        self.agent = agent
        self.first_line = first_line
        self.valid_tags = valid_tags
        super().__init__(
            "Content must start with a valid tag. Format: [TAG] One line summary. "
            f"Valid tags for {agent}: {', '.join(valid_tags)}"
        )


class PolicyRejectedError(RalphLisaError):
    """Policy Gate found violations while running in block mode."""

    def __init__(self, agent: str, tag: str, violations: list):
        self.agent = agent
        self.tag = tag
        self.violations = violations
        details = "; ".join(v.message for v in violations)
        super().__init__(f"Policy mode is 'block'. Submission rejected: {details}")


class StepBlockedError(RalphLisaError):
    """Latest tags do not allow moving on to a new step."""

    def __init__(self, ralph_tag: str, lisa_tag: str):
        self.ralph_tag = ralph_tag
        self.lisa_tag = lisa_tag
        super().__init__(
            f"Step transition blocked: Ralph's latest is [{ralph_tag or 'none'}], "
            f"Lisa's latest is [{lisa_tag or 'none'}]. Need [CONSENSUS] from both, "
            "or [CONSENSUS] paired with [PASS]. Use --force to override."
        )
