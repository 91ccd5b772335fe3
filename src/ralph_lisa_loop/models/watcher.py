"""Delivery watcher models: in-memory state, outcomes and tunables."""

import os
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ralph_lisa_loop.constants import (
    DEFAULT_TRIGGER_TEXT,
    MAX_INJECT_RETRIES,
    MAX_TRANSCRIPT_BYTES,
    PANE_TAIL_LINES,
)
from ralph_lisa_loop.models.agent import Agent


class DeliveryOutcome(str, Enum):
    """Result of one delivery attempt. Only DELIVERED acknowledges the turn."""

    DELIVERED = "delivered"
    AGENT_EXITED = "agent_exited"
    PROMPT_DETECTED = "prompt_detected"
    PAUSED = "paused"
    OUTPUT_BUSY = "output_busy"
    STUCK_INPUT = "stuck_input"
    NO_REACTION = "no_reaction"
    PANE_ERROR = "pane_error"


class BackoffMode(str, Enum):
    NORMAL = "normal"
    DEGRADED = "degraded"
    ALERT = "alert"


class CycleAction(str, Enum):
    """What a single watcher cycle did."""

    NOOP = "noop"
    ACK = "ack"
    RETRY = "retry"
    DEGRADED = "degraded"
    ALERT = "alert"


class PaneState(BaseModel):
    """Interactive-prompt bookkeeping for one agent pane."""

    prompt_hits: int = 0
    paused: bool = False
    pause_size: int = 0


class WatcherState(BaseModel):
    """Private watcher state. Lives only as long as the watcher process."""

    seen_turn: Optional[Agent] = None
    acked_turn: Optional[Agent] = None
    fail_count: int = 0
    panes: Dict[Agent, PaneState] = Field(
        default_factory=lambda: {agent: PaneState() for agent in Agent}
    )

    @property
    def owed(self) -> bool:
        return self.seen_turn is not None and self.seen_turn != self.acked_turn


def _get_float_env(name: str, default: float) -> float:
    """Parse float env var with safe fallback."""
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _get_int_env(name: str, default: int) -> int:
    """Parse int env var with safe fallback."""
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


class WatcherConfig(BaseModel):
    """Timing and size limits for the delivery watcher, all in seconds/bytes."""

    poll_seconds: float = 2.0
    degraded_delay: float = 30.0
    liveness_interval: float = 0.5
    quiet_seconds: float = 3.0
    stability_poll: float = 0.5
    stability_timeout: float = 60.0
    confirm_delay: float = 2.0
    inject_delay: float = 1.0
    verify_delay: float = 5.0
    max_inject_retries: int = MAX_INJECT_RETRIES
    tail_lines: int = PANE_TAIL_LINES
    max_log_bytes: int = MAX_TRANSCRIPT_BYTES
    trigger_text: str = DEFAULT_TRIGGER_TEXT

    @classmethod
    def from_env(cls) -> "WatcherConfig":
        """Build config from RL_WATCH_* environment variables."""
        defaults = cls()
        return cls(
            poll_seconds=_get_float_env("RL_WATCH_POLL_SECONDS", defaults.poll_seconds),
            degraded_delay=_get_float_env("RL_WATCH_DEGRADED_DELAY", defaults.degraded_delay),
            quiet_seconds=_get_float_env("RL_WATCH_QUIET_SECONDS", defaults.quiet_seconds),
            stability_timeout=_get_float_env(
                "RL_WATCH_STABILITY_TIMEOUT", defaults.stability_timeout
            ),
            confirm_delay=_get_float_env("RL_WATCH_CONFIRM_DELAY", defaults.confirm_delay),
            verify_delay=_get_float_env("RL_WATCH_VERIFY_DELAY", defaults.verify_delay),
            max_log_bytes=_get_int_env("RL_WATCH_MAX_LOG_BYTES", defaults.max_log_bytes),
            trigger_text=os.getenv("RL_WATCH_TRIGGER", "") or defaults.trigger_text,
        )
