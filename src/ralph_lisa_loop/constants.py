"""Constants for the Ralph-Lisa Loop application.

This module defines the configuration constants used throughout the application,
including session directory layout, tag vocabulary, policy settings and the
delivery watcher's thresholds.

Ralph-Lisa Loop coordinates two interactive CLI agents (Ralph, the implementer,
and Lisa, the reviewer) that take turns on a shared task through a file mailbox,
with a watcher that nudges whichever agent's tmux pane holds the turn.
"""

# =============================================================================
# Session Directory Layout
# =============================================================================
# Session state lives inside the project, one active session per project
STATE_DIR_NAME = ".dual-agent"

# Archived sessions are copied here by `ralph-lisa archive`
ARCHIVE_DIR_NAME = ".dual-agent-archive"

TASK_FILE = "task.md"
ROUND_FILE = "round.txt"
STEP_FILE = "step.txt"
TURN_FILE = "turn.txt"
LAST_ACTION_FILE = "last_action.txt"
PLAN_FILE = "plan.md"
WORK_FILE = "work.md"  # Ralph's slot: latest submission only
REVIEW_FILE = "review.md"  # Lisa's slot: rolling window of recent submissions
HISTORY_FILE = "history.md"  # Append-only

# Watcher process identity and its own log
WATCHER_PID_FILE = "watcher.pid"
WATCHER_LOG_FILE = "watcher.log"

# Live transcripts are pane<N>.log, archived ones go to logs/pane<N>-<ts>.log
TRANSCRIPT_LOG_PATTERN = "pane{index}.log"
TRANSCRIPT_ARCHIVE_DIR = "logs"

DEFAULT_STEP = "planning"
DEFAULT_TASK = "Waiting for task assignment"
NO_ACTION_YET = "(No action yet)"

# =============================================================================
# Submission Configuration
# =============================================================================
# Number of Lisa submissions kept in review.md; older ones survive in history.md
REVIEW_WINDOW_SIZE = 3

# Separator line written in front of every slot entry. Only a header directly
# after this line is treated as a canonical entry header.
SLOT_ENTRY_SEPARATOR = "<!-- rl:entry -->"

# History note for file/stdin submissions, whose full text stays in the slot
HISTORY_EXTERNAL_NOTE = "(Full content submitted from {source}; see {slot})"

# Summaries of file/stdin submissions are clipped to this many characters
HISTORY_SUMMARY_MAX_CHARS = 200

# =============================================================================
# Policy Configuration
# =============================================================================
# off | warn | block; anything else falls back to off
POLICY_MODE_ENV = "RL_POLICY_MODE"

# =============================================================================
# Environment Configuration
# =============================================================================
PROJECT_DIR_ENV = "RL_PROJECT_DIR"
LOG_LEVEL_ENV = "RL_LOG_LEVEL"

# =============================================================================
# Delivery Watcher Configuration
# =============================================================================
# Default tmux session and pane targets (window.pane) for each agent
DEFAULT_TMUX_SESSION = "ralph-lisa-auto"
DEFAULT_RALPH_PANE = "0.0"
DEFAULT_LISA_PANE = "0.1"

# Text typed into the agent's input box when it becomes its turn
DEFAULT_TRIGGER_TEXT = "go"

# Consecutive failed deliveries before backing off / alerting the operator
DEGRADED_FAIL_THRESHOLD = 10
ALERT_FAIL_THRESHOLD = 30

# Consecutive prompt detections before a pane is paused
PROMPT_PAUSE_THRESHOLD = 3

# Consecutive bare-shell samples before an agent is treated as exited
LIVENESS_SAMPLES = 3

# Foreground process names that mean "the agent CLI is no longer running"
SHELL_PROCESS_NAMES = frozenset({"bash", "zsh", "sh", "fish", "dash", "ksh", "tcsh", "csh"})

# Lines of pane history inspected for prompts and stuck input
PANE_TAIL_LINES = 15

# Agent CLIs draw rules and hints under the input box
STUCK_INPUT_SCAN_LINES = 3

# Attempts at getting the trigger submitted before giving up on this cycle
MAX_INJECT_RETRIES = 3

# Seconds given to a prior watcher to exit after SIGTERM before SIGKILL
WATCHER_TAKEOVER_GRACE_SECONDS = 3.0

# Maximum transcript size before the watcher truncates it
MAX_TRANSCRIPT_BYTES = 10 * 1024 * 1024
