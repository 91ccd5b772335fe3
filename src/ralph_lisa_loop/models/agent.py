"""Agent and tag vocabulary."""

from enum import Enum
from typing import Dict, FrozenSet

from pydantic import BaseModel, ConfigDict

from ralph_lisa_loop.constants import REVIEW_FILE, WORK_FILE


class Agent(str, Enum):
    """The two collaborating agents. Values are what turn.txt stores."""

    RALPH = "ralph"
    LISA = "lisa"

    @property
    def display_name(self) -> str:
        return AGENT_RULES[self].display_name

    @property
    def other(self) -> "Agent":
        return Agent.LISA if self is Agent.RALPH else Agent.RALPH


class Tag(str, Enum):
    """Classification tag that prefixes the first line of every submission."""

    PLAN = "PLAN"
    RESEARCH = "RESEARCH"
    CODE = "CODE"
    FIX = "FIX"
    PASS = "PASS"
    NEEDS_WORK = "NEEDS_WORK"
    CHALLENGE = "CHALLENGE"
    DISCUSS = "DISCUSS"
    QUESTION = "QUESTION"
    CONSENSUS = "CONSENSUS"


class AgentRules(BaseModel):
    """Per-agent rule table entry."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    allowed_tags: FrozenSet[Tag]
    slot_file: str
    slot_title: str
    # Ralph keeps one entry, Lisa a rolling window
    slot_keeps_window: bool
    # Only Lisa's submission closes an exchange and advances the round
    advances_round: bool

    def ordered_tags(self) -> list:
        return [tag.value for tag in Tag if tag in self.allowed_tags]


AGENT_RULES: Dict[Agent, AgentRules] = {
    Agent.RALPH: AgentRules(
        display_name="Ralph",
        allowed_tags=frozenset(
            {
                Tag.PLAN,
                Tag.RESEARCH,
                Tag.CODE,
                Tag.FIX,
                Tag.CHALLENGE,
                Tag.DISCUSS,
                Tag.QUESTION,
                Tag.CONSENSUS,
            }
        ),
        slot_file=WORK_FILE,
        slot_title="Ralph Work",
        slot_keeps_window=False,
        advances_round=False,
    ),
    Agent.LISA: AgentRules(
        display_name="Lisa",
        allowed_tags=frozenset(
            {
                Tag.PASS,
                Tag.NEEDS_WORK,
                Tag.CHALLENGE,
                Tag.DISCUSS,
                Tag.QUESTION,
                Tag.CONSENSUS,
            }
        ),
        slot_file=REVIEW_FILE,
        slot_title="Lisa Review",
        slot_keeps_window=True,
        advances_round=True,
    ),
}

# (Ralph, Lisa) latest-tag pairs that allow entering a new step
CONSENSUS_PAIRS: FrozenSet[tuple] = frozenset(
    {
        (Tag.CONSENSUS, Tag.CONSENSUS),
        (Tag.CONSENSUS, Tag.PASS),
        (Tag.PASS, Tag.CONSENSUS),
    }
)
