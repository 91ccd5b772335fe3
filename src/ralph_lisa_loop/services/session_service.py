"""Session service with lifecycle and inspection workflow functions."""

import logging
from pathlib import Path
from typing import Dict, Optional

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.constants import DEFAULT_TASK, HISTORY_FILE
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.models.session import Session

logger = logging.getLogger(__name__)


def init_session(store: SessionStore, task: Optional[str] = None) -> Session:
    """Create a new session for ``task``, overwriting any existing one."""
    try:
        return store.create(task.strip() if task and task.strip() else DEFAULT_TASK)
    except Exception as e:
        logger.error(f"Failed to initialize session in {store.state_dir}: {e}")
        raise


def whose_turn(store: SessionStore) -> Agent:
    store.require()
    return store.get_turn()


def get_status(store: SessionStore) -> Optional[Dict]:
    """Status summary, or None when no session exists."""
    if not store.exists():
        return None
    session = store.load()
    return {
        "task": session.task or "Unknown",
        "round": session.round,
        "step": session.step,
        "turn": session.turn.value,
        "last_action": session.last_action,
    }


def read_session_file(store: SessionStore, name: str) -> Optional[str]:
    store.require()
    return store.read_file(name)


def get_history(store: SessionStore) -> str:
    store.require()
    return store.read_file(HISTORY_FILE) or ""


def archive_session(store: SessionStore, name: Optional[str] = None) -> Path:
    try:
        return store.archive(name)
    except Exception as e:
        logger.error(f"Failed to archive session: {e}")
        raise


def clean_session(store: SessionStore) -> bool:
    return store.destroy()
