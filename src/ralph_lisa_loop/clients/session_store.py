"""File-backed session store.

All session state lives as plain text/markdown files in ``<project>/.dual-agent/``.
Every other component goes through this client; nothing else touches those files
(the watcher's transcripts and PID file are the watcher's own).
"""

import logging
import re
import shutil
from pathlib import Path
from typing import List, Optional

from ralph_lisa_loop.constants import (
    ARCHIVE_DIR_NAME,
    DEFAULT_STEP,
    HISTORY_EXTERNAL_NOTE,
    HISTORY_FILE,
    HISTORY_SUMMARY_MAX_CHARS,
    LAST_ACTION_FILE,
    NO_ACTION_YET,
    PLAN_FILE,
    REVIEW_WINDOW_SIZE,
    ROUND_FILE,
    SLOT_ENTRY_SEPARATOR,
    STATE_DIR_NAME,
    STEP_FILE,
    TASK_FILE,
    TURN_FILE,
)
from ralph_lisa_loop.exceptions import NotInitializedError
from ralph_lisa_loop.models.agent import AGENT_RULES, Agent, Tag
from ralph_lisa_loop.models.session import Session, SlotEntry, SourceKind, Submission
from ralph_lisa_loop.utils.files import append_text, atomic_write_text, read_text
from ralph_lisa_loop.utils.text import TAG_PATTERN, file_stamp, timestamp

logger = logging.getLogger(__name__)

# Canonical slot entry header: "## [TAG] Round R | Step: S"
SLOT_HEADER_RE = re.compile(rf"^## \[({TAG_PATTERN})\] Round (\S+) \| Step: (.*)$")
UPDATED_RE = re.compile(r"^\*\*Updated\*\*: (.*)$")
SUMMARY_RE = re.compile(r"^\*\*Summary\*\*: ?(.*)$")


class SessionStore:
    """Read/write access to one project's session directory."""

    def __init__(self, project_dir: Optional[Path] = None):
        self.project_dir = Path(project_dir or Path.cwd()).resolve()
        self.state_dir = self.project_dir / STATE_DIR_NAME

    def path(self, name: str) -> Path:
        return self.state_dir / name

    # ── lifecycle ───────────────────────────────────────────────────────

    def exists(self) -> bool:
        return self.state_dir.is_dir()

    def require(self) -> None:
        """Raise NotInitializedError unless a session directory exists."""
        if not self.exists():
            raise NotInitializedError(str(self.state_dir))

    def create(self, task: str) -> Session:
        """Create a fresh session, replacing any existing one."""
        if self.exists():
            logger.warning(f"Existing session in {self.state_dir} will be overwritten")
            shutil.rmtree(self.state_dir)
        self.state_dir.mkdir(parents=True)

        ts = timestamp()
        session = Session(
            turn=Agent.RALPH, round=1, step=DEFAULT_STEP, task=task, last_action=NO_ACTION_YET
        )
        atomic_write_text(self.path(TASK_FILE), f"# Task\n\n{task}\n\n---\nCreated: {ts}\n")
        atomic_write_text(self.path(ROUND_FILE), "1")
        atomic_write_text(self.path(STEP_FILE), session.step)
        atomic_write_text(self.path(LAST_ACTION_FILE), session.last_action)
        atomic_write_text(
            self.path(PLAN_FILE), "# Plan\n\n(To be drafted by Ralph and reviewed by Lisa)\n"
        )
        for agent in Agent:
            rules = AGENT_RULES[agent]
            atomic_write_text(
                self.path(rules.slot_file),
                f"# {rules.slot_title}\n\n(Waiting for {rules.display_name} to submit)\n",
            )
        atomic_write_text(
            self.path(HISTORY_FILE),
            f"# Collaboration History\n\n**Task**: {task}\n**Started**: {ts}\n",
        )
        # Written last so a watcher never sees a turn for a half-built session
        atomic_write_text(self.path(TURN_FILE), session.turn.value)
        logger.info(f"Initialized session in {self.state_dir}")
        return session

    def destroy(self) -> bool:
        if not self.exists():
            return False
        shutil.rmtree(self.state_dir)
        logger.info(f"Removed session directory {self.state_dir}")
        return True

    def archive(self, name: Optional[str] = None) -> Path:
        """Copy the session directory to .dual-agent-archive/<name>/."""
        self.require()
        dest = self.project_dir / ARCHIVE_DIR_NAME / (name or file_stamp())
        shutil.copytree(self.state_dir, dest, dirs_exist_ok=True)
        logger.info(f"Archived session to {dest}")
        return dest

    # ── scalar fields ───────────────────────────────────────────────────

    def read_turn(self) -> Optional[Agent]:
        """Current turn, or None when turn.txt is missing or unreadable.

        Used by the watcher, which must keep polling through a missing session.
        """
        raw = read_text(self.path(TURN_FILE))
        try:
            return Agent(raw)
        except ValueError:
            return None

    def get_turn(self) -> Agent:
        return self.read_turn() or Agent.RALPH

    def set_turn(self, turn: Agent) -> None:
        atomic_write_text(self.path(TURN_FILE), turn.value)

    def get_round(self) -> int:
        try:
            return max(1, int(read_text(self.path(ROUND_FILE))))
        except ValueError:
            return 1

    def set_round(self, round_number: int) -> None:
        atomic_write_text(self.path(ROUND_FILE), str(round_number))

    def get_step(self) -> str:
        return read_text(self.path(STEP_FILE)) or DEFAULT_STEP

    def set_step(self, step: str) -> None:
        atomic_write_text(self.path(STEP_FILE), step)

    def get_task(self) -> str:
        lines = read_text(self.path(TASK_FILE)).splitlines()
        # "# Task", "", "<task>"
        return lines[2] if len(lines) > 2 else ""

    def get_last_action(self) -> str:
        return read_text(self.path(LAST_ACTION_FILE)) or NO_ACTION_YET

    def set_last_action(self, text: str) -> None:
        atomic_write_text(self.path(LAST_ACTION_FILE), text)

    def load(self) -> Session:
        self.require()
        return Session(
            turn=self.get_turn(),
            round=self.get_round(),
            step=self.get_step(),
            task=self.get_task(),
            last_action=self.get_last_action(),
        )

    def read_file(self, name: str) -> Optional[str]:
        """Raw contents of a file in the session directory, None if absent."""
        target = (self.state_dir / name).resolve()
        if self.state_dir.resolve() not in target.parents or not target.is_file():
            return None
        return target.read_text(encoding="utf-8")

    # ── submission slots ────────────────────────────────────────────────

    @staticmethod
    def render_slot_entry(submission: Submission) -> str:
        return (
            f"{SLOT_ENTRY_SEPARATOR}\n"
            f"## [{submission.tag.value}] Round {submission.round} | Step: {submission.step}\n"
            f"**Updated**: {submission.timestamp}\n"
            f"**Summary**: {submission.summary}\n"
            f"\n"
            f"{submission.content}\n"
        )

    def write_slot(self, submission: Submission) -> None:
        """Record a submission in its agent's slot.

        Ralph's slot is overwritten; Lisa's keeps the last REVIEW_WINDOW_SIZE
        entries, dropping the oldest first.
        """
        rules = AGENT_RULES[submission.agent]
        blocks = [self.render_slot_entry(submission)]
        if rules.slot_keeps_window:
            previous = self._raw_slot_blocks(submission.agent)
            blocks = (previous + blocks)[-REVIEW_WINDOW_SIZE:]
        atomic_write_text(
            self.path(rules.slot_file), f"# {rules.slot_title}\n\n" + "\n".join(blocks)
        )

    def _raw_slot_blocks(self, agent: Agent) -> List[str]:
        """Split a slot file into entry blocks, each starting at its separator."""
        raw = self.read_file(AGENT_RULES[agent].slot_file) or ""
        lines = raw.split("\n")
        starts = [
            i
            for i in range(len(lines) - 1)
            if lines[i] == SLOT_ENTRY_SEPARATOR and SLOT_HEADER_RE.match(lines[i + 1])
        ]
        blocks = []
        for n, start in enumerate(starts):
            end = starts[n + 1] if n + 1 < len(starts) else len(lines)
            blocks.append("\n".join(lines[start:end]).rstrip("\n") + "\n")
        return blocks

    def read_slot_entries(self, agent: Agent) -> List[SlotEntry]:
        """Parse an agent's slot, oldest entry first.

        Only headers in canonical position (right after the entry separator) are
        honored, so tag-like text inside a submission body is never mistaken for
        an entry.
        """
        entries = []
        for block in self._raw_slot_blocks(agent):
            lines = block.rstrip("\n").split("\n")[1:]
            header = SLOT_HEADER_RE.match(lines[0])
            tag, round_label, step = header.groups()
            rest = lines[1:]
            updated = None
            summary = ""
            if rest and UPDATED_RE.match(rest[0]):
                updated = UPDATED_RE.match(rest[0]).group(1)
                rest = rest[1:]
            if rest and SUMMARY_RE.match(rest[0]):
                summary = SUMMARY_RE.match(rest[0]).group(1)
                rest = rest[1:]
            entries.append(
                SlotEntry(
                    tag=Tag(tag),
                    round=round_label,
                    step=step,
                    updated=updated,
                    summary=summary,
                    content="\n".join(rest).strip("\n"),
                )
            )
        return entries

    def latest_entry(self, agent: Agent) -> Optional[SlotEntry]:
        entries = self.read_slot_entries(agent)
        return entries[-1] if entries else None

    def latest_tag(self, agent: Agent) -> Optional[Tag]:
        entry = self.latest_entry(agent)
        return entry.tag if entry else None

    # ── history ─────────────────────────────────────────────────────────

    def append_history(self, submission: Submission) -> None:
        rules = AGENT_RULES[submission.agent]
        if submission.source_kind is SourceKind.INLINE:
            summary = submission.summary
            body = submission.content
        else:
            summary = submission.summary[:HISTORY_SUMMARY_MAX_CHARS]
            body = HISTORY_EXTERNAL_NOTE.format(
                source=submission.source_kind.value, slot=rules.slot_file
            )
        entry = (
            f"\n---\n\n"
            f"## [{rules.display_name}] [{submission.tag.value}] "
            f"Round {submission.round} | Step: {submission.step}\n"
            f"**Time**: {submission.timestamp}\n"
            f"**Summary**: {summary}\n\n"
            f"{body}\n\n"
        )
        append_text(self.path(HISTORY_FILE), entry)

    def append_step_marker(self, step: str) -> None:
        append_text(
            self.path(HISTORY_FILE), f"\n---\n\n# Step: {step}\n\nStarted: {timestamp()}\n\n"
        )
