"""Single-watcher PID file with takeover of a previous watcher."""

import logging
import os
import signal
import time
from pathlib import Path
from typing import Callable, Optional

from ralph_lisa_loop.constants import WATCHER_TAKEOVER_GRACE_SECONDS

logger = logging.getLogger(__name__)


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to someone else
        return True


class WatcherLock:
    """watcher.pid for the running watcher.

    A newly started watcher replaces any earlier one: a live prior watcher is
    sent SIGTERM, then SIGKILL once the grace period runs out. A PID file
    left behind by a crashed watcher is simply overwritten.
    """

    def __init__(
        self,
        pid_file: Path,
        grace_seconds: float = WATCHER_TAKEOVER_GRACE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pid_file = pid_file
        self.grace_seconds = grace_seconds
        self._sleep = sleep
        self.pid = os.getpid()

    def read_pid(self) -> Optional[int]:
        try:
            return int(self.pid_file.read_text(encoding="utf-8", errors="replace").strip())
        except FileNotFoundError:
            return None
        except ValueError:
            logger.warning(f"Ignoring invalid PID file {self.pid_file}")
            return None

    def acquire(self) -> Optional[int]:
        """Write our PID, terminating a live prior watcher first.

        Returns the PID of the watcher that was taken over, if any.
        """
        old_pid = self.read_pid()
        taken_over = None
        if old_pid is not None and old_pid != self.pid:
            if pid_alive(old_pid):
                logger.info(f"Stopping previous watcher (PID {old_pid})")
                self._terminate(old_pid)
                taken_over = old_pid
            else:
                logger.info(f"Replacing stale PID file (PID {old_pid} no longer exists)")

        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(self.pid), encoding="utf-8")
        logger.debug(f"Watcher PID {self.pid} written to {self.pid_file}")
        return taken_over

    def _terminate(self, pid: int) -> None:
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            return
        deadline = time.monotonic() + self.grace_seconds
        while time.monotonic() < deadline:
            if not pid_alive(pid):
                return
            self._sleep(0.1)
        logger.warning(f"Previous watcher (PID {pid}) ignored SIGTERM; sending SIGKILL")
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def release(self) -> None:
        """Remove the PID file if it still names this process."""
        if self.read_pid() == self.pid:
            self.pid_file.unlink(missing_ok=True)
