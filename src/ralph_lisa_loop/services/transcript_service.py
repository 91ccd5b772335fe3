"""Pane transcript capture, truncation and archiving."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ralph_lisa_loop.constants import (
    MAX_TRANSCRIPT_BYTES,
    TRANSCRIPT_ARCHIVE_DIR,
    TRANSCRIPT_LOG_PATTERN,
)
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.services.pane_inspector import PaneInspector
from ralph_lisa_loop.utils.files import append_text
from ralph_lisa_loop.utils.text import file_stamp, timestamp

logger = logging.getLogger(__name__)

# pane0 is Ralph, pane1 is Lisa
PANE_INDEX = {Agent.RALPH: 0, Agent.LISA: 1}


def live_log_path(state_dir: Path, agent: Agent) -> Path:
    return state_dir / TRANSCRIPT_LOG_PATTERN.format(index=PANE_INDEX[agent])


def _archive_dest(archive_dir: Path, path: Path, stamp: str) -> Path:
    """First free ``<stem>-<stamp>[-N]<suffix>`` name under archive_dir."""
    dest = archive_dir / f"{path.stem}-{stamp}{path.suffix}"
    n = 1
    while dest.exists():
        dest = archive_dir / f"{path.stem}-{stamp}-{n}{path.suffix}"
        n += 1
    return dest


class TranscriptManager:
    """Owns the pane<N>.log transcripts for the lifetime of one watcher."""

    def __init__(
        self,
        state_dir: Path,
        panes: Dict[Agent, PaneInspector],
        max_bytes: int = MAX_TRANSCRIPT_BYTES,
    ):
        self.state_dir = state_dir
        self.panes = panes
        self.max_bytes = max_bytes
        self._capturing: Dict[Agent, Path] = {}

    def start(self) -> None:
        for agent, pane in self.panes.items():
            path = live_log_path(self.state_dir, agent)
            try:
                pane.capture_to(path)
                self._capturing[agent] = path
            except Exception as e:
                logger.warning(f"Failed to start transcript for {agent.value} ({pane.label}): {e}")

    def mark(self, text: str) -> None:
        """Append a marker line to every live transcript."""
        for path in self._capturing.values():
            append_text(path, f"\n=== [{timestamp()}] {text} ===\n")

    def enforce_limit(self) -> List[Agent]:
        """Truncate transcripts over the size ceiling.

        Capture is detached before truncating and reattached afterwards so
        tmux never writes into a file being truncated.
        """
        truncated = []
        for agent, path in list(self._capturing.items()):
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                continue
            if size <= self.max_bytes:
                continue
            pane = self.panes[agent]
            try:
                pane.stop_capture()
                with open(path, "w", encoding="utf-8"):
                    pass
                pane.capture_to(path)
            except Exception as e:
                logger.warning(f"Failed to truncate transcript {path.name}: {e}")
                continue
            logger.info(f"Truncated transcript {path.name} ({size} bytes > {self.max_bytes})")
            truncated.append(agent)
        return truncated

    def archive(self) -> List[Path]:
        """Stop capture and move transcripts, empty ones included, to logs/ under a timestamped name."""
        archived = []
        stamp = file_stamp()
        archive_dir = self.state_dir / TRANSCRIPT_ARCHIVE_DIR
        for agent, path in list(self._capturing.items()):
            try:
                self.panes[agent].stop_capture()
            except Exception as e:
                logger.warning(f"Failed to stop transcript for {agent.value}: {e}")
            self._capturing.pop(agent, None)
            if not path.exists():
                continue
            archive_dir.mkdir(parents=True, exist_ok=True)
            dest = _archive_dest(archive_dir, path, stamp)
            path.rename(dest)
            archived.append(dest)
            logger.info(f"Archived transcript: {dest.name}")
        return archived


def list_logs(state_dir: Path) -> Tuple[List[Path], List[Path]]:
    """Return (live, archived) transcripts, skipping empty live ones."""
    live = [
        path
        for agent in Agent
        for path in [live_log_path(state_dir, agent)]
        if path.is_file() and path.stat().st_size > 0
    ]
    archive_dir = state_dir / TRANSCRIPT_ARCHIVE_DIR
    archived = sorted(archive_dir.glob("*.log")) if archive_dir.is_dir() else []
    return live, archived


def read_log(state_dir: Path, name: Optional[str] = None) -> Optional[str]:
    """Content of a named transcript (live or archived), or of all live ones."""
    live, archived = list_logs(state_dir)
    if name is None:
        if not live:
            return None
        return "\n".join(f"--- {p.name} ---\n{p.read_text(errors='replace')}" for p in live)
    for path in live + archived:
        if path.name == name:
            return path.read_text(errors="replace")
    return None
