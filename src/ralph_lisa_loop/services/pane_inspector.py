"""Capability interface between the delivery watcher and a terminal pane.

The watcher's health checks are heuristics over an opaque interactive process;
keeping them behind this small interface lets tests drive the watcher with a fake
pane instead of a real tmux server.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol

from ralph_lisa_loop.clients.tmux import TmuxClient, tmux_client

logger = logging.getLogger(__name__)


class PaneInspector(Protocol):
    """What the watcher needs from the terminal layer."""

    label: str

    def foreground_process(self) -> str:
        """Name of the process in the foreground of the pane."""
        ...

    def recent_text(self, lines: int) -> str:
        """Visible tail of the pane."""
        ...

    def inject(self, text: str) -> None:
        """Type literal text into the pane's input."""
        ...

    def submit(self) -> None:
        """Press Enter."""
        ...

    def clear_input(self) -> None:
        ...

    def capture_to(self, path: Path) -> None:
        """Start appending the pane's raw output to ``path``."""
        ...

    def stop_capture(self) -> None:
        ...

    def output_size(self) -> int:
        """Monotonic-ish measure of how much the pane has printed."""
        ...


class TmuxPaneInspector:
    """PaneInspector backed by a tmux pane target such as ``ralph-lisa-auto:0.1``."""

    def __init__(self, target: str, client: Optional[TmuxClient] = None):
        self.target = target
        self.label = target
        self._client = client or tmux_client
        self._capture_path: Optional[Path] = None

    def foreground_process(self) -> str:
        return self._client.get_pane_command(self.target)

    def recent_text(self, lines: int) -> str:
        return self._client.get_history(self.target, tail_lines=lines)

    def inject(self, text: str) -> None:
        self._client.send_text(self.target, text)

    def submit(self) -> None:
        self._client.send_enter(self.target)

    def clear_input(self) -> None:
        self._client.clear_input(self.target)

    def capture_to(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        # Drop any pipe a previous watcher left attached
        self._client.stop_pipe_pane(self.target)
        self._client.pipe_pane(self.target, str(path))
        self._capture_path = path
        logger.debug(f"Capturing pane {self.target} to {path}")

    def stop_capture(self) -> None:
        self._client.stop_pipe_pane(self.target)
        self._capture_path = None

    def output_size(self) -> int:
        """Transcript size when capturing, otherwise the cursor's offset in the pane."""
        if self._capture_path is not None:
            try:
                return self._capture_path.stat().st_size
            except FileNotFoundError:
                return 0
        return self._client.get_output_position(self.target)
