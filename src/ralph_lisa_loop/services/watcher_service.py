"""Delivery watcher: nudge whichever agent holds the turn until it reacts.

The watcher keeps a single piece of private state, the last turn it saw and
the last turn it confirmed delivered. Every cycle it compares the two; a turn
that has been seen but not acknowledged is owed and is retried until one
delivery is verified. Nothing in the session directory is ever written here.
"""

import logging
import re
import threading
import time
from typing import Callable, Dict, List, Optional

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.constants import (
    ALERT_FAIL_THRESHOLD,
    DEGRADED_FAIL_THRESHOLD,
    LIVENESS_SAMPLES,
    PROMPT_PAUSE_THRESHOLD,
    SHELL_PROCESS_NAMES,
    STUCK_INPUT_SCAN_LINES,
)
from ralph_lisa_loop.models.agent import AGENT_RULES, Agent
from ralph_lisa_loop.models.watcher import (
    BackoffMode,
    CycleAction,
    DeliveryOutcome,
    WatcherConfig,
    WatcherState,
)
from ralph_lisa_loop.services.pane_inspector import PaneInspector
from ralph_lisa_loop.services.transcript_service import TranscriptManager
from ralph_lisa_loop.utils.text import clean_terminal_output

logger = logging.getLogger(__name__)

# Interactive prompts that need a human. Typing the trigger into one of these
# would answer it (or leak into a password field), so delivery is held back.
INTERACTIVE_PROMPT_PATTERNS = [
    r"[Pp]assword\s*(?:for [^:]*)?:\s*$",
    r"[Pp]assphrase\b.*:\s*$",
    r"\b[Cc]redentials?\b.*:\s*$",
    r"Username for '.*':\s*$",
    r"\(y/n\)",
    r"\[[yY]/[nN]\]",
    r"\((?:yes/no)(?:/\[fingerprint\])?\)\??\s*$",
    r"\b(?:OTP|one-time (?:password|code))\b",
    r"[Vv]erification code",
    r"\b2FA\b|[Tt]wo-factor",
    r"Would you like to run",
    r"Allow .* to run",
    r"Do you want to (?:proceed|make this edit|create|allow)",
]
INTERACTIVE_PROMPT_RE = re.compile("|".join(f"(?:{p})" for p in INTERACTIVE_PROMPT_PATTERNS), re.MULTILINE)

# Prompt glyphs agent CLIs draw in front of their input line
INPUT_PREFIX_PATTERN = r"(?:[>❯›$]\s*)?"


def backoff_mode(fail_count: int) -> BackoffMode:
    if fail_count >= ALERT_FAIL_THRESHOLD:
        return BackoffMode.ALERT
    if fail_count >= DEGRADED_FAIL_THRESHOLD:
        return BackoffMode.DEGRADED
    return BackoffMode.NORMAL


def has_interactive_prompt(text: str) -> bool:
    """True when the (raw) pane tail shows a prompt waiting for a human."""
    return INTERACTIVE_PROMPT_RE.search(clean_terminal_output(text)) is not None


def is_stuck_input(text: str, trigger: str) -> bool:
    """True when the trigger still sits in the input box near the bottom of the pane."""
    lines = [line.strip() for line in clean_terminal_output(text).splitlines() if line.strip()]
    pattern = re.compile(rf"^{INPUT_PREFIX_PATTERN}{re.escape(trigger)}$")
    return any(pattern.match(line) for line in lines[-STUCK_INPUT_SCAN_LINES:])


class WatcherStopped(Exception):
    """Raised out of a wait when the watcher has been asked to stop."""

    pass


class TurnWatcher:
    """Polls turn.txt and delivers the trigger to the agent whose turn it is.

    Every wait inside a cycle goes through ``_pause``, which returns early and
    unwinds the cycle once ``stop_event`` is set.
    """

    def __init__(
        self,
        store: SessionStore,
        panes: Dict[Agent, PaneInspector],
        config: Optional[WatcherConfig] = None,
        transcripts: Optional[TranscriptManager] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        stop_event: Optional[threading.Event] = None,
    ):
        self.store = store
        self.panes = panes
        self.config = config or WatcherConfig()
        self.transcripts = transcripts
        self.state = WatcherState()
        self.stop_event = stop_event or threading.Event()
        self._sleep = sleep or self._wait
        self._clock = clock

    def _wait(self, seconds: float) -> None:
        self.stop_event.wait(seconds)

    def _pause(self, seconds: float) -> None:
        self._sleep(seconds)
        if self.stop_event.is_set():
            raise WatcherStopped()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def check_and_trigger(self) -> CycleAction:
        """Run one watcher cycle and report what it did."""
        turn = self.store.read_turn()
        if turn is None:
            return CycleAction.NOOP

        if turn != self.state.seen_turn:
            logger.info(
                f"Turn changed: {self.state.seen_turn.value if self.state.seen_turn else 'none'}"
                f" -> {turn.value}"
            )
            self.state.seen_turn = turn
            self.state.fail_count = 0
            if self.transcripts:
                self.transcripts.mark(f"TURN -> {AGENT_RULES[turn].display_name}")
                self._resnapshot_paused(list(self.panes))

        if not self.state.owed:
            return CycleAction.NOOP

        mode = backoff_mode(self.state.fail_count)
        if mode == BackoffMode.ALERT:
            logger.error(
                f"ALERT: {self.state.fail_count} consecutive failed deliveries to "
                f"{AGENT_RULES[turn].display_name} ({self.panes[turn].label}). "
                "Check the pane; still retrying."
            )
            self._pause(self.config.degraded_delay)
        elif mode == BackoffMode.DEGRADED:
            logger.warning(
                f"Delivery degraded after {self.state.fail_count} failures; "
                f"waiting {self.config.degraded_delay:g}s before retrying"
            )
            self._pause(self.config.degraded_delay)

        outcome = self.deliver(turn)
        if outcome == DeliveryOutcome.DELIVERED:
            self.state.acked_turn = turn
            self.state.fail_count = 0
            self.state.panes[turn].prompt_hits = 0
            logger.info(f"Delivered trigger to {AGENT_RULES[turn].display_name}")
            return CycleAction.ACK

        self.state.fail_count += 1
        logger.info(
            f"Delivery to {AGENT_RULES[turn].display_name} failed: {outcome.value} "
            f"(attempt {self.state.fail_count})"
        )
        if mode == BackoffMode.ALERT:
            return CycleAction.ALERT
        if mode == BackoffMode.DEGRADED:
            return CycleAction.DEGRADED
        return CycleAction.RETRY

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def deliver(self, agent: Agent) -> DeliveryOutcome:
        """Try once to get ``agent`` to notice its turn.

        Pane failures come back as PANE_ERROR; only a stop request escapes,
        as WatcherStopped.
        """
        pane = self.panes[agent]
        try:
            return self._deliver(agent, pane)
        except WatcherStopped:
            raise
        except Exception as e:
            logger.warning(f"Pane error while delivering to {pane.label}: {e}")
            return DeliveryOutcome.PANE_ERROR

    def _deliver(self, agent: Agent, pane: PaneInspector) -> DeliveryOutcome:
        if not self._agent_alive(pane):
            logger.warning(f"Agent in {pane.label} appears to have exited (shell in foreground)")
            return DeliveryOutcome.AGENT_EXITED

        outcome = self._gate_interactive_prompt(agent, pane)
        if outcome is not None:
            return outcome

        size = self._wait_for_quiet(pane)
        if size is None:
            logger.info(f"Pane {pane.label} still producing output after {self.config.stability_timeout:g}s")
            return DeliveryOutcome.OUTPUT_BUSY

        # Re-confirm right before typing
        self._pause(self.config.confirm_delay)
        if pane.output_size() != size:
            return DeliveryOutcome.OUTPUT_BUSY
        if has_interactive_prompt(pane.recent_text(self.config.tail_lines)):
            return DeliveryOutcome.PROMPT_DETECTED

        outcome = self._inject(pane)
        if outcome is not None:
            return outcome

        self._pause(self.config.verify_delay)
        if pane.output_size() <= size:
            logger.info(f"No reaction from {pane.label} after trigger")
            return DeliveryOutcome.NO_REACTION
        return DeliveryOutcome.DELIVERED

    def _agent_alive(self, pane: PaneInspector) -> bool:
        """Dead only if every sample shows a bare shell; one agent sample is enough."""
        for i in range(LIVENESS_SAMPLES):
            if i:
                self._pause(self.config.liveness_interval)
            if pane.foreground_process().strip() not in SHELL_PROCESS_NAMES:
                return True
        return False

    def _gate_interactive_prompt(self, agent: Agent, pane: PaneInspector) -> Optional[DeliveryOutcome]:
        state = self.state.panes[agent]
        prompt = has_interactive_prompt(pane.recent_text(self.config.tail_lines))

        if state.paused:
            # Both: the pane moved on and the prompt is gone
            if prompt or pane.output_size() == state.pause_size:
                return DeliveryOutcome.PAUSED
            logger.info(f"Pane {pane.label} resumed after interactive prompt")
            state.paused = False
            state.prompt_hits = 0
            return None

        if not prompt:
            state.prompt_hits = 0
            return None

        state.prompt_hits += 1
        if state.prompt_hits >= PROMPT_PAUSE_THRESHOLD:
            state.paused = True
            state.pause_size = pane.output_size()
            logger.warning(
                f"Pane {pane.label} is waiting on an interactive prompt; "
                "delivery paused until it is answered"
            )
            return DeliveryOutcome.PAUSED
        logger.info(f"Interactive prompt detected in {pane.label} ({state.prompt_hits}/{PROMPT_PAUSE_THRESHOLD})")
        return DeliveryOutcome.PROMPT_DETECTED

    def _resnapshot_paused(self, agents: List[Agent]) -> None:
        """Re-baseline paused panes after the watcher itself changed their transcripts."""
        for agent in agents:
            state = self.state.panes[agent]
            if state.paused:
                state.pause_size = self.panes[agent].output_size()

    def _wait_for_quiet(self, pane: PaneInspector) -> Optional[int]:
        """Output size once it stops changing for quiet_seconds, or None on timeout."""
        deadline = self._clock() + max(self.config.stability_timeout, 0.1)
        last_size = pane.output_size()
        quiet_start = self._clock()
        while self._clock() < deadline:
            self._pause(self.config.stability_poll)
            size = pane.output_size()
            if size == last_size:
                if self._clock() - quiet_start >= self.config.quiet_seconds:
                    return size
            else:
                quiet_start = self._clock()
                last_size = size
        return None

    def _inject(self, pane: PaneInspector) -> Optional[DeliveryOutcome]:
        trigger = self.config.trigger_text
        for attempt in range(1, self.config.max_inject_retries + 1):
            pane.inject(trigger)
            self._pause(self.config.inject_delay)
            pane.submit()
            self._pause(self.config.inject_delay)
            if not is_stuck_input(pane.recent_text(self.config.tail_lines), trigger):
                return None
            logger.info(f"Trigger stuck in {pane.label} input (attempt {attempt}); clearing")
            pane.clear_input()
        return DeliveryOutcome.STUCK_INPUT

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self, stop_event: threading.Event, wake_event: Optional[threading.Event] = None) -> None:
        """Run cycles until ``stop_event`` is set.

        ``stop_event`` also interrupts the waits inside a cycle, so a stop
        request unwinds a delivery in progress. ``wake_event`` is set by the
        turn-file listener; it only shortens the wait between cycles.
        """
        self.stop_event = stop_event
        logger.info(
            "Watcher started: "
            + ", ".join(f"{a.display_name}={p.label}" for a, p in self.panes.items())
        )
        if self.transcripts:
            self.transcripts.start()
        try:
            while not stop_event.is_set():
                try:
                    self.check_and_trigger()
                except WatcherStopped:
                    break
                except Exception as e:
                    logger.error(f"Watcher cycle failed: {e}")
                if self.transcripts:
                    truncated = self.transcripts.enforce_limit()
                    self._resnapshot_paused(truncated)
                if wake_event is not None:
                    wake_event.wait(self.config.poll_seconds)
                    wake_event.clear()
                else:
                    stop_event.wait(self.config.poll_seconds)
        finally:
            if self.transcripts:
                self.transcripts.archive()
            logger.info("Watcher stopped")
