import subprocess
import sys
from types import SimpleNamespace

import pytest

from inkwell import tasks
from inkwell.tasks import TaskError, revert_output, run_command, upgrade_packages


def record_runs(monkeypatch, returncodes=None):
    calls = []
    codes = list(returncodes or [])

    def fake_run(command, cwd=None):
        calls.append((command, cwd))
        return SimpleNamespace(returncode=codes.pop(0) if codes else 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls


def test_run_command_raises_with_exit_status(monkeypatch, tmp_path):
    record_runs(monkeypatch, [4])
    with pytest.raises(TaskError) as excinfo:
        run_command(["npm", "run", "preview"], tmp_path)
    assert excinfo.value.returncode == 4
    assert excinfo.value.command == ["npm", "run", "preview"]


def test_revert_output_runs_checkout_then_clean(monkeypatch, tmp_path, capsys):
    calls = record_runs(monkeypatch)
    monkeypatch.setattr(tasks, "require_executable", lambda name: "/usr/bin/git")
    revert_output(tmp_path, "docs")
    assert calls == [
        (["/usr/bin/git", "checkout", "--", "docs"], tmp_path),
        (["/usr/bin/git", "clean", "-fd", "--", "docs"], tmp_path),
    ]
    assert "/usr/bin/git checkout -- docs" in capsys.readouterr().out


def test_revert_output_stops_at_first_failure(monkeypatch, tmp_path):
    calls = record_runs(monkeypatch, [128])
    monkeypatch.setattr(tasks, "require_executable", lambda name: "git")
    with pytest.raises(TaskError) as excinfo:
        revert_output(tmp_path, "docs")
    assert excinfo.value.returncode == 128
    assert len(calls) == 1


def test_upgrade_packages(monkeypatch, tmp_path):
    calls = record_runs(monkeypatch)
    upgrade_packages(tmp_path, ["mistune", "Jinja2"])
    assert calls == [
        ([sys.executable, "-m", "pip", "install", "--upgrade", "mistune", "Jinja2"], tmp_path)
    ]


def test_upgrade_without_packages_is_a_no_op(monkeypatch, tmp_path, capsys):
    calls = record_runs(monkeypatch)
    upgrade_packages(tmp_path, [])
    assert calls == []
    assert "nothing to do" in capsys.readouterr().out
