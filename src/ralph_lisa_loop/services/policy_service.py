"""Policy Gate: content-quality checks run against a submission before it is accepted.

Modes (RL_POLICY_MODE env):
  off   - no checks (default)
  warn  - report violations, don't block
  block - reject the submission when violations are found
"""

import logging
import os
from typing import Callable, Dict, List, Optional

from ralph_lisa_loop.constants import POLICY_MODE_ENV
from ralph_lisa_loop.models.agent import Agent, Tag
from ralph_lisa_loop.models.policy import PolicyMode, PolicyResult, PolicyViolation

logger = logging.getLogger(__name__)

TEST_RESULTS_MARKER = "test results"

# Four RESEARCH field groups; any variant in a group counts the group once
RESEARCH_FIELD_GROUPS = [
    ["参考实现", "reference"],
    ["关键类型", "key type"],
    ["数据格式", "data format", "数据结构", "data structure"],
    ["验证方式", "verification"],
]
RESEARCH_MIN_FIELDS = 2
RESEARCH_MIN_LINES = 3  # strictly more than this many lines also passes


def get_policy_mode() -> PolicyMode:
    """Read the policy mode from the environment, falling back to off."""
    raw = os.environ.get(POLICY_MODE_ENV, "").strip().lower()
    try:
        return PolicyMode(raw)
    except ValueError:
        return PolicyMode.OFF


def check_ralph(tag: Tag, content: str) -> List[PolicyViolation]:
    """Check Ralph's submission for policy violations."""
    violations = []

    if tag in (Tag.CODE, Tag.FIX) and TEST_RESULTS_MARKER not in content.lower():
        violations.append(
            PolicyViolation(
                rule="test-results",
                message=f'[{tag.value}] submission missing "Test Results" section.',
            )
        )

    if tag is Tag.RESEARCH:
        lowered = content.lower()
        matched_fields = sum(
            1
            for variants in RESEARCH_FIELD_GROUPS
            if any(variant.lower() in lowered for variant in variants)
        )
        has_substantial_content = len(content.split("\n")) > RESEARCH_MIN_LINES
        if matched_fields < RESEARCH_MIN_FIELDS and not has_substantial_content:
            violations.append(
                PolicyViolation(
                    rule="research-content",
                    message=(
                        "[RESEARCH] submission needs at least 2 fields "
                        "(参考实现/关键类型/数据结构/验证方式 or reference/key types/"
                        "data structure/verification) or an equivalent summary with evidence."
                    ),
                )
            )

    return violations


def check_lisa(tag: Tag, content: str) -> List[PolicyViolation]:
    """Check Lisa's submission for policy violations."""
    violations = []

    if tag in (Tag.PASS, Tag.NEEDS_WORK):
        body_lines = [line for line in content.split("\n")[1:] if line.strip()]
        if not body_lines:
            violations.append(
                PolicyViolation(
                    rule="reason-required",
                    message=f"[{tag.value}] submission must include at least 1 reason.",
                )
            )

    return violations


_CHECKS: Dict[Agent, Callable[[Tag, str], List[PolicyViolation]]] = {
    Agent.RALPH: check_ralph,
    Agent.LISA: check_lisa,
}


def check(agent: Agent, tag: Tag, content: str) -> List[PolicyViolation]:
    """Run the agent's rules. Pure: same input, same violations, whatever the mode."""
    return _CHECKS[agent](tag, content)


def run_check(
    agent: Agent, tag: Tag, content: str, mode: Optional[PolicyMode] = None
) -> PolicyResult:
    """Apply the policy mode to a submission about to be recorded."""
    mode = mode or get_policy_mode()
    if mode is PolicyMode.OFF:
        return PolicyResult(allowed=True, mode=mode)

    violations = check(agent, tag, content)
    for violation in violations:
        logger.warning(f"Policy ({mode.value}) {agent.value}: {violation.message}")

    allowed = not (mode is PolicyMode.BLOCK and violations)
    return PolicyResult(allowed=allowed, mode=mode, violations=violations)
