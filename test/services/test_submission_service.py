"""Unit tests for the submission protocol."""

import pytest

from ralph_lisa_loop.clients.session_store import SessionStore
from ralph_lisa_loop.constants import HISTORY_FILE, LAST_ACTION_FILE, REVIEW_FILE, WORK_FILE
from ralph_lisa_loop.exceptions import (
    EmptySubmissionError,
    InvalidTagError,
    NotInitializedError,
    PolicyRejectedError,
    WrongTurnError,
)
from ralph_lisa_loop.models.agent import Agent, Tag
from ralph_lisa_loop.models.policy import PolicyMode
from ralph_lisa_loop.models.session import SourceKind
from ralph_lisa_loop.services.submission_service import submit


def _snapshot(store):
    return {p.name: p.read_text() for p in store.state_dir.iterdir() if p.is_file()}


class TestSubmitSuccess:
    def test_ralph_submission_passes_turn(self, store):
        submission, session, policy = submit(store, Agent.RALPH, "[PLAN] Outline the parser\n\n1. lexer")

        assert submission.tag == Tag.PLAN
        assert submission.summary == "Outline the parser"
        assert session.turn == Agent.LISA
        assert session.round == 1
        assert store.read_turn() == Agent.LISA
        assert store.get_round() == 1
        assert policy.allowed

        last_action = store.read_file(LAST_ACTION_FILE)
        assert last_action.startswith("[PLAN] Outline the parser (by Ralph, ")

    def test_lisa_submission_advances_round(self, store):
        submit(store, Agent.RALPH, "[PLAN] plan")
        _, session, _ = submit(store, Agent.LISA, "[PASS] Looks good\n\nClear scope.")

        assert session.turn == Agent.RALPH
        assert session.round == 2
        assert store.get_round() == 2

    def test_slot_and_history_written(self, store):
        submit(store, Agent.RALPH, "[PLAN] plan\n\ndetails here")

        work = store.read_file(WORK_FILE)
        assert "## [PLAN] Round 1 | Step: planning" in work
        assert "**Summary**: plan" in work
        assert "details here" in store.read_file(HISTORY_FILE)

    def test_crlf_and_whitespace_normalized(self, store):
        submission, _, _ = submit(store, Agent.RALPH, "  [PLAN] plan\r\n\r\nbody  \n")
        assert submission.content == "[PLAN] plan\n\nbody"

    def test_file_source_history_has_summary_only(self, store):
        submit(store, Agent.RALPH, "[PLAN] plan\n\nsecret body", source_kind=SourceKind.FILE)

        history = store.read_file(HISTORY_FILE)
        assert "secret body" not in history
        assert "secret body" in store.read_file(WORK_FILE)

    def test_warn_mode_records_with_violations(self, store):
        submission, _, policy = submit(
            store, Agent.RALPH, "[CODE] implemented", policy_mode=PolicyMode.WARN
        )

        assert submission.tag == Tag.CODE
        assert policy.allowed
        assert [v.rule for v in policy.violations] == ["test-results"]
        assert store.read_turn() == Agent.LISA

    def test_full_exchange_keeps_review_window(self, store):
        for i in range(4):
            submit(store, Agent.RALPH, f"[DISCUSS] point {i}")
            submit(store, Agent.LISA, f"[DISCUSS] reply {i}")

        review = store.read_slot_entries(Agent.LISA)
        assert [e.summary for e in review] == ["reply 1", "reply 2", "reply 3"]
        assert store.get_round() == 5
        assert "reply 0" in store.read_file(HISTORY_FILE)
        assert "reply 0" not in store.read_file(REVIEW_FILE)


class TestSubmitRejected:
    def test_not_initialized(self, tmp_path):
        with pytest.raises(NotInitializedError):
            submit(SessionStore(tmp_path), Agent.RALPH, "[PLAN] plan")

    def test_empty_content(self, store):
        before = _snapshot(store)
        with pytest.raises(EmptySubmissionError):
            submit(store, Agent.RALPH, "  \n\n ")
        assert _snapshot(store) == before

    def test_wrong_turn(self, store):
        before = _snapshot(store)
        with pytest.raises(WrongTurnError) as exc_info:
            submit(store, Agent.LISA, "[PASS] ok\n\nreason")
        assert "Ralph's turn" in str(exc_info.value)
        assert _snapshot(store) == before

    def test_missing_tag(self, store):
        with pytest.raises(InvalidTagError) as exc_info:
            submit(store, Agent.RALPH, "Implemented the thing")
        assert "PLAN" in str(exc_info.value)

    def test_tag_not_at_start(self, store):
        with pytest.raises(InvalidTagError):
            submit(store, Agent.RALPH, "Done: [CODE] thing")

    def test_tag_reserved_for_other_agent(self, store):
        before = _snapshot(store)
        with pytest.raises(InvalidTagError):
            submit(store, Agent.RALPH, "[PASS] self-approval")
        assert _snapshot(store) == before

    def test_lisa_cannot_use_code(self, store):
        submit(store, Agent.RALPH, "[PLAN] plan")
        with pytest.raises(InvalidTagError):
            submit(store, Agent.LISA, "[CODE] I'll just do it")

    def test_block_mode_rejects_without_writing(self, store):
        before = _snapshot(store)
        with pytest.raises(PolicyRejectedError) as exc_info:
            submit(store, Agent.RALPH, "[FIX] patched", policy_mode=PolicyMode.BLOCK)
        assert "Test Results" in str(exc_info.value)
        assert _snapshot(store) == before

    def test_block_mode_from_env(self, store, monkeypatch):
        monkeypatch.setenv("RL_POLICY_MODE", "block")
        submit(store, Agent.RALPH, "[PLAN] plan")
        with pytest.raises(PolicyRejectedError):
            submit(store, Agent.LISA, "[NEEDS_WORK] no")
