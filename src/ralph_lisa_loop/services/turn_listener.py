"""Optional file-event listener that wakes the watcher when turn.txt changes."""

import logging
import shutil
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

from ralph_lisa_loop.constants import TURN_FILE

logger = logging.getLogger(__name__)


def event_command(directory: Path) -> Optional[List[str]]:
    """Command that prints one line per change in ``directory``, if a tool is installed.

    The directory is watched rather than the file because turn.txt is replaced
    by rename on every write.
    """
    if shutil.which("inotifywait"):
        return ["inotifywait", "-m", "-q", "-e", "close_write,moved_to,create", str(directory)]
    if shutil.which("fswatch"):
        return ["fswatch", str(directory)]
    return None


class TurnFileListener(threading.Thread):
    """Sets ``wake_event`` whenever the event tool reports a change.

    Does nothing else: the polling loop stays the only reader of turn.txt.
    """

    def __init__(self, directory: Path, wake_event: threading.Event, command: Optional[List[str]] = None):
        super().__init__(name="turn-file-listener", daemon=True)
        self.directory = directory
        self.wake_event = wake_event
        self.command = command or event_command(directory)
        self._process: Optional[subprocess.Popen] = None

    @property
    def available(self) -> bool:
        return self.command is not None

    def run(self) -> None:
        if not self.command:
            return
        try:
            self._process = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
            )
        except OSError as e:
            logger.warning(f"File events unavailable ({self.command[0]}): {e}; polling only")
            return
        logger.info(f"Listening for turn changes with {self.command[0]}")
        if self._process.stdout is None:
            return
        for line in self._process.stdout:
            # Transcripts in the same directory change constantly
            if line.rstrip().endswith(TURN_FILE):
                self.wake_event.set()
        logger.debug("Turn file listener exited")

    def stop(self) -> None:
        if self._process and self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
