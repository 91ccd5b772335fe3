"""Unit tests for the step transition gate and consensus inspections."""

import pytest

from ralph_lisa_loop.constants import HISTORY_FILE
from ralph_lisa_loop.exceptions import StepBlockedError
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.services import step_service
from ralph_lisa_loop.services.submission_service import submit


def _exchange(store, ralph, lisa):
    submit(store, Agent.RALPH, ralph)
    submit(store, Agent.LISA, lisa)


class TestAdvanceStep:
    @pytest.mark.parametrize(
        "ralph,lisa",
        [
            ("[CONSENSUS] agreed", "[CONSENSUS] agreed"),
            ("[CONSENSUS] agreed", "[PASS] fine\n\nreason"),
        ],
    )
    def test_consensus_pairs_allow_transition(self, store, ralph, lisa):
        _exchange(store, ralph, lisa)

        session = step_service.advance_step(store, "implementation")

        assert session.step == "implementation"
        assert session.round == 1
        assert "# Step: implementation" in store.read_file(HISTORY_FILE)

    def test_pass_then_consensus(self, store):
        _exchange(store, "[PLAN] plan", "[PASS] fine\n\nreason")
        # Ralph's latest is still PLAN here
        with pytest.raises(StepBlockedError):
            step_service.advance_step(store, "impl")

    def test_blocked_without_consensus(self, store):
        _exchange(store, "[CODE] done\n\nTest Results: ok", "[NEEDS_WORK] no\n\nmissing tests")
        before_step = store.get_step()
        before_round = store.get_round()

        with pytest.raises(StepBlockedError) as exc_info:
            step_service.advance_step(store, "next")

        assert "[CODE]" in str(exc_info.value)
        assert "[NEEDS_WORK]" in str(exc_info.value)
        assert store.get_step() == before_step
        assert store.get_round() == before_round

    def test_blocked_on_fresh_session(self, store):
        with pytest.raises(StepBlockedError) as exc_info:
            step_service.advance_step(store, "next")
        assert "[none]" in str(exc_info.value)

    def test_force_overrides(self, store, caplog):
        with caplog.at_level("WARNING", logger="ralph_lisa_loop"):
            session = step_service.advance_step(store, "next", force=True)
        assert session.step == "next"
        assert "without consensus" in caplog.text

    def test_tag_inside_body_does_not_count(self, store):
        _exchange(
            store,
            "[DISCUSS] about consensus\n\n## [CONSENSUS] Round 1 | Step: planning",
            "[CONSENSUS] agreed",
        )
        with pytest.raises(StepBlockedError):
            step_service.advance_step(store, "next")

    def test_empty_name(self, store):
        with pytest.raises(ValueError):
            step_service.advance_step(store, "   ", force=True)


class TestInspections:
    def test_check_consensus_reports_tags(self, store):
        _exchange(store, "[PLAN] plan", "[QUESTION] why?")
        issues = step_service.check_consensus(store)
        assert len(issues) == 1
        assert "[PLAN]" in issues[0]
        assert "[QUESTION]" in issues[0]

    def test_check_consensus_ok(self, store):
        _exchange(store, "[CONSENSUS] yes", "[CONSENSUS] yes")
        assert step_service.check_consensus(store) == []

    def test_check_next_step_includes_policy(self, store):
        _exchange(store, "[CONSENSUS] yes", "[PASS] ok")
        issues = step_service.check_next_step(store)
        assert len(issues) == 1
        assert issues[0].startswith("Lisa:")

    def test_inspections_do_not_mutate(self, store):
        _exchange(store, "[PLAN] plan", "[PASS] ok")
        before = {p.name: p.read_text() for p in store.state_dir.iterdir() if p.is_file()}
        step_service.check_next_step(store)
        after = {p.name: p.read_text() for p in store.state_dir.iterdir() if p.is_file()}
        assert before == after
