"""Policy Gate models."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class PolicyMode(str, Enum):
    """How submit reacts to policy violations."""

    OFF = "off"
    WARN = "warn"
    BLOCK = "block"


class PolicyViolation(BaseModel):
    rule: str
    message: str


class PolicyResult(BaseModel):
    """Outcome of an inline policy check during submit."""

    allowed: bool
    mode: PolicyMode
    violations: List[PolicyViolation] = Field(default_factory=list)
