"""Session and submission models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ralph_lisa_loop.models.agent import Agent, Tag


class SourceKind(str, Enum):
    """Where a submission's content came from."""

    INLINE = "inline"
    FILE = "file"
    STDIN = "stdin"


class Session(BaseModel):
    """Snapshot of the collaboration state backed by the session directory."""

    turn: Agent = Agent.RALPH
    round: int = Field(default=1, ge=1)
    step: str
    task: str
    last_action: str


class Submission(BaseModel):
    """One accepted contribution from an agent."""

    agent: Agent
    tag: Tag
    summary: str
    body: str
    content: str
    round: int
    step: str
    timestamp: str
    source_kind: SourceKind = SourceKind.INLINE


class SlotEntry(BaseModel):
    """A submission as parsed back out of work.md or review.md."""

    tag: Tag
    round: str
    step: str
    updated: Optional[str] = None
    summary: str = ""
    content: str = ""
