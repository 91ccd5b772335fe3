"""Shared fixtures."""

import logging

import pytest

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.constants import POLICY_MODE_ENV


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Tests never inherit a policy mode or project dir from the shell."""
    monkeypatch.delenv(POLICY_MODE_ENV, raising=False)
    monkeypatch.delenv("RL_PROJECT_DIR", raising=False)
    monkeypatch.delenv("RL_LOG_LEVEL", raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI invocations attach handlers bound to CliRunner's streams; drop them."""
    yield
    logger = logging.getLogger("ralph_lisa_loop")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def store(tmp_path):
    """A freshly initialized session in a temporary project."""
    s = SessionStore(tmp_path)
    s.create("Build a calculator")
    return s
