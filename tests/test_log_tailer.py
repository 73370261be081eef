"""Tests for claude_live_monitor.services.log_tailer."""

import os

import pytest

from claude_live_monitor.services.log_tailer import BOOTSTRAP_LINES, LogTailer, find_current_log_file
from claude_live_monitor.types.errors import NoLogFile
from claude_live_monitor.types.sessions import Session
from helpers import WORKSPACE, append_lines, make_line


def _session(workspace=WORKSPACE) -> Session:
    return Session(pid=4242, workspace_folders=(workspace,), ide_name="VS Code")


def _set_mtime(path, mtime):
    os.utime(path, (mtime, mtime))


@pytest.fixture
def tailer(qapp, claude_dir):
    t = LogTailer(claude_dir / "projects")
    yield t
    t.detach()


@pytest.fixture
def received(tailer):
    batches = []
    tailer.lines_ready.connect(lambda lines: batches.append(lines))
    return batches


class TestFindCurrentLogFile:
    def test_newest_by_mtime(self, project_dir):
        old = project_dir / "old.jsonl"
        new = project_dir / "new.jsonl"
        old.write_text("")
        new.write_text("")
        _set_mtime(old, 1_000_000)
        _set_mtime(new, 2_000_000)
        assert find_current_log_file(project_dir) == new

    def test_agent_logs_excluded(self, project_dir):
        main = project_dir / "main.jsonl"
        agent = project_dir / "agent-1234.jsonl"
        main.write_text("")
        agent.write_text("")
        _set_mtime(main, 1_000_000)
        _set_mtime(agent, 2_000_000)
        assert find_current_log_file(project_dir) == main

    def test_tie_broken_by_name(self, project_dir):
        a = project_dir / "a.jsonl"
        b = project_dir / "b.jsonl"
        a.write_text("")
        b.write_text("")
        _set_mtime(a, 1_000_000)
        _set_mtime(b, 1_000_000)
        assert find_current_log_file(project_dir) == b

    def test_other_extensions_ignored(self, project_dir):
        (project_dir / "notes.txt").write_text("")
        assert find_current_log_file(project_dir) is None

    def test_missing_directory(self, tmp_path):
        assert find_current_log_file(tmp_path / "absent") is None


class TestAttach:
    def test_no_log_file_raises(self, tailer, project_dir):
        with pytest.raises(NoLogFile):
            tailer.attach(_session())
        assert not tailer.is_attached

    def test_no_project_directory_raises(self, tailer):
        with pytest.raises(NoLogFile):
            tailer.attach(_session("/somewhere/else"))

    def test_bootstrap_replays_recent_lines(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=i) for i in range(3)])

        assert tailer.attach(_session()) == log
        assert received == [[make_line(n=i) for i in range(3)]]
        assert tailer.cursor == log.stat().st_size

    def test_bootstrap_window_is_bounded(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=i) for i in range(BOOTSTRAP_LINES + 20)])

        tailer.attach(_session())
        assert len(received[0]) == BOOTSTRAP_LINES
        assert received[0][0] == make_line(n=20)
        assert received[0][-1] == make_line(n=BOOTSTRAP_LINES + 19)

    def test_blank_lines_skipped(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=1), "", "   ", make_line(n=2)])
        tailer.attach(_session())
        assert received == [[make_line(n=1), make_line(n=2)]]

    def test_partial_last_line_not_consumed(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=1)])
        with open(log, "a") as f:
            f.write('{"n": 2')
        tailer.attach(_session())
        assert received == [[make_line(n=1)]]
        assert tailer.cursor == len(make_line(n=1)) + 1

    def test_empty_file_attaches_without_lines(self, tailer, received, project_dir):
        (project_dir / "s.jsonl").write_text("")
        tailer.attach(_session())
        assert tailer.is_attached
        assert received == []

    def test_attached_signal(self, tailer, project_dir):
        log = project_dir / "s.jsonl"
        log.write_text("")
        paths = []
        tailer.attached.connect(lambda p: paths.append(p))
        tailer.attach(_session())
        assert paths == [str(log)]


class TestReadNew:
    def test_reads_appended_lines(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=1)])
        tailer.attach(_session())
        received.clear()

        append_lines(log, [make_line(n=2), make_line(n=3)])
        assert tailer.read_new() == [make_line(n=2), make_line(n=3)]
        assert received == [[make_line(n=2), make_line(n=3)]]
        assert tailer.cursor == log.stat().st_size

    def test_second_read_is_empty(self, tailer, received, project_dir):
        log = project_dir / "s.jsonl"
        log.write_text("")
        tailer.attach(_session())
        append_lines(log, [make_line(n=1)])
        tailer.read_new()
        received.clear()

        assert tailer.read_new() == []
        assert received == []

    def test_partial_line_completed_later(self, tailer, project_dir):
        log = project_dir / "s.jsonl"
        log.write_text("")
        tailer.attach(_session())

        with open(log, "a") as f:
            f.write('{"n": ')
        assert tailer.read_new() == []

        with open(log, "a") as f:
            f.write('5}\n')
        assert tailer.read_new() == ['{"n": 5}']

    def test_truncated_file_reread_from_start(self, tailer, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=i) for i in range(5)])
        tailer.attach(_session())

        log.write_text(make_line(n=99) + "\n")
        assert tailer.read_new() == [make_line(n=99)]

    def test_not_attached(self, tailer):
        assert tailer.read_new() == []


class TestDetach:
    def test_detach_resets(self, tailer, project_dir):
        log = project_dir / "s.jsonl"
        append_lines(log, [make_line(n=1)])
        tailer.attach(_session())

        detached = []
        tailer.detached.connect(lambda: detached.append(True))
        tailer.detach()

        assert not tailer.is_attached
        assert tailer.path is None
        assert tailer.cursor == 0
        assert detached == [True]

    def test_detach_when_idle_is_silent(self, tailer):
        detached = []
        tailer.detached.connect(lambda: detached.append(True))
        tailer.detach()
        assert detached == []

    def test_reattach_switches_file(self, tailer, project_dir, claude_dir):
        (project_dir / "s.jsonl").write_text("")
        tailer.attach(_session())

        other_dir = claude_dir / "projects" / "-tmp-other"
        other_dir.mkdir()
        other_log = other_dir / "o.jsonl"
        other_log.write_text("")

        assert tailer.attach(_session("/tmp/other")) == other_log
        assert tailer.path == other_log
