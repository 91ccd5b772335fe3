"""Unit tests for pane transcript capture and archiving."""

from unittest.mock import MagicMock

import pytest

from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.services.transcript_service import TranscriptManager, list_logs, read_log


@pytest.fixture
def panes():
    return {agent: MagicMock(label=f"s:0.{i}") for i, agent in enumerate(Agent)}


@pytest.fixture
def manager(tmp_path, panes):
    m = TranscriptManager(tmp_path, panes, max_bytes=100)
    m.start()
    # capture_to is mocked, create the files tmux would
    for name in ("pane0.log", "pane1.log"):
        (tmp_path / name).touch()
    return m


class TestTranscriptManager:
    def test_start_captures_each_pane(self, tmp_path, manager, panes):
        panes[Agent.RALPH].capture_to.assert_called_once_with(tmp_path / "pane0.log")
        panes[Agent.LISA].capture_to.assert_called_once_with(tmp_path / "pane1.log")

    def test_start_failure_is_logged_not_raised(self, tmp_path, panes):
        panes[Agent.LISA].capture_to.side_effect = RuntimeError("no pane")
        m = TranscriptManager(tmp_path, panes)
        m.start()
        m.mark("TURN -> Lisa")
        assert (tmp_path / "pane0.log").exists()
        assert not (tmp_path / "pane1.log").exists()

    def test_mark_appends_to_all(self, tmp_path, manager):
        manager.mark("TURN -> Lisa")
        for name in ("pane0.log", "pane1.log"):
            assert "TURN -> Lisa" in (tmp_path / name).read_text()

    def test_enforce_limit_truncates_and_restarts_capture(self, tmp_path, manager, panes):
        (tmp_path / "pane0.log").write_text("x" * 150)
        (tmp_path / "pane1.log").write_text("y" * 50)

        truncated = manager.enforce_limit()

        assert truncated == [Agent.RALPH]
        assert (tmp_path / "pane0.log").read_text() == ""
        assert (tmp_path / "pane1.log").read_text() == "y" * 50
        panes[Agent.RALPH].stop_capture.assert_called_once()
        assert panes[Agent.RALPH].capture_to.call_count == 2
        panes[Agent.LISA].stop_capture.assert_not_called()

    def test_archive_moves_logs(self, tmp_path, manager, panes):
        (tmp_path / "pane0.log").write_text("ralph output")

        archived = manager.archive()

        assert [p.name.split("-")[0] for p in archived] == ["pane0", "pane1"]
        assert all(p.parent == tmp_path / "logs" for p in archived)
        assert archived[0].read_text() == "ralph output"
        # Empty transcripts are archived too
        assert archived[1].read_text() == ""
        assert not (tmp_path / "pane0.log").exists()
        assert not (tmp_path / "pane1.log").exists()
        panes[Agent.LISA].stop_capture.assert_called_once()

    def test_archive_same_second_keeps_both(self, tmp_path, manager, monkeypatch):
        monkeypatch.setattr(
            "ralph_lisa_loop.services.transcript_service.file_stamp", lambda: "2026-01-01T10-00-00"
        )
        (tmp_path / "logs").mkdir()
        earlier = tmp_path / "logs" / "pane0-2026-01-01T10-00-00.log"
        earlier.write_text("first watcher")
        (tmp_path / "pane0.log").write_text("second watcher")

        archived = manager.archive()

        assert archived[0].name == "pane0-2026-01-01T10-00-00-1.log"
        assert archived[0].read_text() == "second watcher"
        assert earlier.read_text() == "first watcher"


class TestListLogs:
    def test_empty(self, tmp_path):
        assert list_logs(tmp_path) == ([], [])
        assert read_log(tmp_path) is None

    def test_live_and_archived(self, tmp_path):
        (tmp_path / "pane0.log").write_text("live ralph")
        (tmp_path / "pane1.log").write_text("")
        (tmp_path / "logs").mkdir()
        (tmp_path / "logs" / "pane1-2026-01-01T10-00-00.log").write_text("old lisa")

        live, archived = list_logs(tmp_path)

        assert [p.name for p in live] == ["pane0.log"]
        assert [p.name for p in archived] == ["pane1-2026-01-01T10-00-00.log"]
        assert read_log(tmp_path, "pane1-2026-01-01T10-00-00.log") == "old lisa"
        assert "live ralph" in read_log(tmp_path)
        assert read_log(tmp_path, "missing.log") is None
