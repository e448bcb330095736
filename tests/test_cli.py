# tests/test_cli.py
from __future__ import annotations

import json
import sys
import threading
from pathlib import Path

import pytest

from shipforge.cli import run_cli
from shipforge.executor import Executor


def _py(code: str) -> str:
    exe = str(Path(sys.executable))
    # This returns a shell command string. JSON will escape it safely.
    return f'"{exe}" -c "{code}"'


def _append(log: Path, word: str) -> str:
    return _py(f"open(r'{log}','a').write('{word}\\n')")


def _write_json_config(path: Path, tasks: dict, macros: dict | None = None, **extra) -> None:
    path.write_text(
        json.dumps({"tasks": tasks, "macros": macros or {}, **extra}), encoding="utf-8"
    )


def test_list_prints_macros_then_tasks(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {
            "b": {"target": "local", "script": "true"},
            "a": {"target": "local", "script": "true"},
        },
        {"deploy": ["b", "a"]},
    )

    code = run_cli(["--config", str(cfg), "list"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["macro deploy: b a", "task a @ local", "task b @ local"]


def test_show_prints_expanded_sequence(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {
            "pull": {"target": "remote", "script": "git pull", "message": "Pulling"},
            "done": {"target": "local", "script": "true"},
        },
        {"deploy": ["pull", "done"]},
        hosts={"remote": "forge@example.com"},
    )

    code = run_cli(["--config", str(cfg), "show", "deploy"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["pull @ remote (forge@example.com): Pulling", "done @ local (local)"]


def test_run_macro_executes_and_reports(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    log = tmp_path / "log.txt"
    _write_json_config(
        cfg,
        {
            "a": {"target": "local", "script": _append(log, "a")},
            "b": {"target": "local", "script": _append(log, "b")},
        },
        {"deploy": ["a", "b"]},
    )

    code = run_cli(["--config", str(cfg), "run", "deploy"])
    captured = capsys.readouterr()

    assert code == 0
    assert log.read_text(encoding="utf-8").splitlines() == ["a", "b"]
    assert "OK a @ local" in captured.out
    assert "OK b @ local" in captured.out
    assert "deploy: success" in captured.out


def test_run_prints_rendered_script_and_output(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {"hello": {"target": "local", "script": "echo hello {{ who }}"}},
        vars={"who": "world"},
    )

    code = run_cli(["--config", str(cfg), "run", "hello"])
    out = capsys.readouterr().out

    assert code == 0
    assert "  $ echo hello world" in out
    assert "  | hello world" in out


def test_set_overrides_variables(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {"hello": {"target": "local", "script": "echo {{ branch }}"}},
        vars={"branch": "main"},
    )

    code = run_cli(["--config", str(cfg), "run", "hello", "--set", "branch=hotfix"])
    out = capsys.readouterr().out

    assert code == 0
    assert "  | hotfix" in out


def test_failure_returns_1_and_names_failing_task(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    log = tmp_path / "log.txt"
    _write_json_config(
        cfg,
        {
            "one": {"target": "local", "script": _append(log, "one")},
            "two": {"target": "local", "script": _py("raise SystemExit(5)")},
            "three": {"target": "local", "script": _append(log, "three")},
        },
        {"deploy": ["one", "two", "three"]},
    )

    code = run_cli(["--config", str(cfg), "run", "deploy", "--quiet"])
    out = capsys.readouterr().out.splitlines()

    assert code == 1
    assert out[1].startswith("FAIL two @ local")
    assert out[1].endswith("exit code = 5")
    assert "SKIP three" in out
    assert out[-1] == "deploy: execution failure in two on local: exited with status 5"
    assert log.read_text(encoding="utf-8").splitlines() == ["one"]


def test_missing_variable_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(cfg, {"a": {"target": "local", "script": "echo {{ nope }}"}})

    code = run_cli(["--config", str(cfg), "run", "a"])
    out = capsys.readouterr().out

    assert code == 2
    assert "binding failure in a" in out


def test_connection_failure_returns_3(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], fake_ssh
) -> None:
    cfg = tmp_path / "shipforge.json"
    fake_ssh.open_error = OSError("Connection refused")
    _write_json_config(
        cfg,
        {"pull": {"target": "remote", "script": "git pull"}},
        hosts={"remote": "forge@example.com"},
    )

    code = run_cli(["--config", str(cfg), "run", "pull"])
    out = capsys.readouterr().out

    assert code == 3
    assert "connection failure in pull on forge@example.com" in out


def test_cancelled_run_returns_130(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    log = tmp_path / "log.txt"
    _write_json_config(cfg, {"a": {"target": "local", "script": _append(log, "a")}})
    cancel = threading.Event()
    cancel.set()

    code = run_cli(["--config", str(cfg), "run", "a"], cancel=cancel)
    _ = capsys.readouterr()

    assert code == 130
    assert not log.exists()


def test_pretend_prints_scripts_without_running(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    log = tmp_path / "log.txt"
    _write_json_config(
        cfg,
        {"a": {"target": "local", "script": _append(log, "{{ word }}")}},
        vars={"word": "pretend"},
    )

    code = run_cli(["--config", str(cfg), "run", "a", "--pretend"])
    out = capsys.readouterr().out

    assert code == 0
    assert out.startswith("# a @ local\nset -e\n")
    assert "write('pretend" in out
    assert not log.exists()


def test_invalid_config_path_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = tmp_path / "missing.json"

    code = run_cli(["--config", str(missing), "list"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


@pytest.mark.parametrize("name", ["nope", "ghost_macro"])
def test_unknown_macro_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], name: str
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(cfg, {"a": {"target": "local", "script": "true"}})

    code = run_cli(["--config", str(cfg), "run", name])
    captured = capsys.readouterr()

    assert code == 2
    assert name in captured.err


def test_malformed_set_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(cfg, {"a": {"target": "local", "script": "true"}})

    code = run_cli(["--config", str(cfg), "run", "a", "--set", "novalue"])
    captured = capsys.readouterr()

    assert code == 2
    assert "KEY=VALUE" in captured.err


def test_interrupted_run_prints_summary_and_returns_130(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {
            "one": {"target": "local", "script": "true"},
            "two": {"target": "local", "script": "true"},
            "three": {"target": "local", "script": "true"},
        },
        {"deploy": ["one", "two", "three"]},
    )
    real_iter_task = Executor.iter_task

    def interrupt_on_two(self, task, bindings):
        if task.id == "two":
            raise KeyboardInterrupt
        yield from real_iter_task(self, task, bindings)

    monkeypatch.setattr(Executor, "iter_task", interrupt_on_two)

    code = run_cli(["--config", str(cfg), "run", "deploy", "--quiet"])
    out = capsys.readouterr().out.splitlines()

    assert code == 130
    assert out[0].startswith("OK one @ local")
    assert "SKIP three" in out
    assert out[-1] == "deploy: cancelled failure in two: interrupted"


def test_stdout_and_stderr_are_printed_as_separate_lines(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg, {"both": {"target": "local", "script": "printf abc\nprintf 'err\\n' >&2"}}
    )

    code = run_cli(["--config", str(cfg), "run", "both"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert "  | abc" in out
    assert "  | err" in out


def test_task_message_is_shown_in_status_line(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "shipforge.json"
    _write_json_config(
        cfg,
        {"clone": {"target": "local", "script": "true", "message": "Cloning repository..."}},
    )

    code = run_cli(["--config", str(cfg), "run", "clone", "--quiet"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out[0].startswith("OK clone @ local: Cloning repository..., ")
