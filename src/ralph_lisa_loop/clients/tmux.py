"""Thin tmux client over libtmux.

Panes are addressed with ordinary tmux targets ("session:window.pane"), which is
what the watcher is configured with.
"""

import logging
import shlex
from typing import Dict, List, Optional

import libtmux

from ralph_lisa_loop.constants import PANE_TAIL_LINES

logger = logging.getLogger(__name__)


class TmuxError(Exception):
    """A tmux command failed."""

    pass


class TmuxClient:
    """Subset of tmux used by the watcher: inspect, capture, type into and pipe panes."""

    def __init__(self, server: Optional[libtmux.Server] = None):
        self.server = server or libtmux.Server()

    def _run(self, *args: str) -> List[str]:
        result = self.server.cmd(*args)
        if result.stderr:
            raise TmuxError(f"tmux {args[0]} failed: {' '.join(result.stderr)}")
        return result.stdout

    def session_exists(self, session_name: str) -> bool:
        try:
            return self.server.has_session(session_name)
        except Exception as e:
            logger.debug(f"tmux has-session failed for {session_name}: {e}")
            return False

    def list_panes(self, session_name: str) -> List[Dict[str, str]]:
        """Enumerate a session's panes with their foreground process."""
        lines = self._run(
            "list-panes",
            "-s",
            "-t",
            session_name,
            "-F",
            "#{window_index}.#{pane_index}\t#{pane_current_command}",
        )
        panes = []
        for line in lines:
            index, _, command = line.partition("\t")
            panes.append({"target": f"{session_name}:{index}", "command": command.strip()})
        return panes

    def get_pane_command(self, target: str) -> str:
        """Name of the process currently in the foreground of a pane."""
        lines = self._run("display-message", "-p", "-t", target, "#{pane_current_command}")
        return lines[0].strip() if lines else ""

    def get_history(self, target: str, tail_lines: Optional[int] = None) -> str:
        """Capture the visible tail of a pane, wrapped lines joined."""
        tail_lines = tail_lines or PANE_TAIL_LINES
        lines = self._run("capture-pane", "-p", "-J", "-t", target, "-S", f"-{tail_lines}")
        return "\n".join(lines)

    def send_text(self, target: str, text: str) -> None:
        """Type literal text into a pane without pressing Enter."""
        self._run("send-keys", "-t", target, "-l", text)

    def send_enter(self, target: str) -> None:
        self._run("send-keys", "-t", target, "Enter")

    def clear_input(self, target: str) -> None:
        """Clear the current input line (readline C-u)."""
        self._run("send-keys", "-t", target, "C-u")

    def get_output_position(self, target: str) -> int:
        """Absolute cursor offset in the pane grid, counted from the top of history.

        Grows as the pane prints, unlike a fixed-size capture. tmux trims the
        oldest history once history-limit is reached, which moves it back.
        """
        lines = self._run(
            "display-message", "-p", "-t", target, "#{history_size} #{cursor_y} #{cursor_x} #{pane_width}"
        )
        try:
            history, cursor_y, cursor_x, width = (int(v) for v in lines[0].split())
        except (IndexError, ValueError):
            raise TmuxError(f"Unexpected cursor position for {target}: {lines}")
        return (history + cursor_y) * (width + 1) + cursor_x

    def pipe_pane(self, target: str, file_path: str) -> None:
        """Append the pane's raw output stream to file_path, replacing any existing pipe."""
        self._run("pipe-pane", "-t", target, f"cat >> {shlex.quote(file_path)}")

    def stop_pipe_pane(self, target: str) -> None:
        self._run("pipe-pane", "-t", target)


# Module-level singleton
tmux_client = TmuxClient()
