from __future__ import annotations

import io
from pathlib import Path

import pytest

from taskwire import OfflineError, RequestCancelledError, RequestResult
from taskwire.request import ByteStream
from twr import cli


def _write_tasks(root: Path, body: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "tasks.toml").write_text(body, encoding="utf-8")
    return root


def test_cli_fetch_prints_status_headers_and_body(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    seen = {}

    async def _fake_request(options, token, log_fn=None, **kwargs):
        seen["options"] = options
        seen["token"] = token
        return RequestResult(200, {"content-type": "text/plain"}, ByteStream(b"hello body"))

    monkeypatch.setattr(cli, "request", _fake_request)
    code = cli.main(["fetch", "https://example.com", "-H", "X-Trace: abc", "--timeout-ms", "500"])
    output = capsys.readouterr().out

    assert code == 0
    assert "Status 200" in output
    assert "content-type" in output
    assert "hello body" in output
    assert seen["options"].headers == {"X-Trace": "abc"}
    assert seen["options"].timeout == 500
    assert not seen["token"].is_cancellation_requested


def test_cli_fetch_writes_body_to_output_file(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def _fake_request(options, token, log_fn=None, **kwargs):
        return RequestResult(200, {}, ByteStream(b"\x00\x01binary"))

    monkeypatch.setattr(cli, "request", _fake_request)
    target = tmp_path / "out.bin"
    code = cli.main(["fetch", "https://example.com/file.bin", "--output", str(target)])

    assert code == 0
    assert target.read_bytes() == b"\x00\x01binary"
    assert "Wrote 8 bytes" in capsys.readouterr().out


def test_cli_fetch_cancelled_exits_130(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def _fake_request(options, token, log_fn=None, **kwargs):
        raise RequestCancelledError()

    monkeypatch.setattr(cli, "request", _fake_request)
    code = cli.main(["fetch", "https://example.com"])

    assert code == cli.EXIT_CANCELLED
    assert "Request cancelled" in capsys.readouterr().out


def test_cli_fetch_offline_reports_error(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def _fake_request(options, token, log_fn=None, **kwargs):
        raise OfflineError()

    monkeypatch.setattr(cli, "request", _fake_request)
    code = cli.main(["fetch", "https://example.com"])

    assert code == 1
    assert "OfflineError" in capsys.readouterr().out


def test_cli_fetch_rejects_malformed_header(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["fetch", "https://example.com", "-H", "no-colon-here"])
    assert code == 1
    assert "Header must look like" in capsys.readouterr().out


def test_parse_header_args_keeps_colons_in_values() -> None:
    assert cli.parse_header_args(["Referer: http://a/b"]) == {"Referer": "http://a/b"}


def test_cli_run_task_prints_events_and_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _write_tasks(tmp_path / "app", "[tasks.greet]\ncommand = 'echo hello'\n")
    code = cli.main(["run", "greet", "--workspace", str(root)])
    output = capsys.readouterr().out

    assert code == 0
    assert "hello" in output
    assert "Task - greet" in output
    assert "end (exit 0)" in output


def test_cli_run_returns_task_exit_code(tmp_path: Path) -> None:
    root = _write_tasks(tmp_path / "app", "[tasks.fail]\ncommand = 'exit 4'\n")
    assert cli.main(["run", "fail", "--workspace", str(root)]) == 4


def test_cli_run_unknown_label(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _write_tasks(tmp_path / "app", "[tasks.greet]\ncommand = 'echo hello'\n")
    code = cli.main(["run", "deploy", "--workspace", str(root)])
    assert code == 1
    assert "No task labelled 'deploy'" in capsys.readouterr().out


def test_cli_run_process_workspace_is_unsupported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _write_tasks(tmp_path / "legacy", 'version = "0.1.0"\n\n[tasks.build]\ncommand = "make"\n')
    code = cli.main(["run", "build", "--workspace", str(root)])
    assert code == 1
    assert "not supported" in capsys.readouterr().out


def test_cli_engine_reports_mode(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    terminal = _write_tasks(tmp_path / "app", "[tasks.greet]\ncommand = 'echo hello'\n")
    legacy = _write_tasks(tmp_path / "legacy", 'version = "0.1.0"\n')

    assert cli.main(["engine", "--workspace", str(terminal)]) == 0
    assert "terminal" in capsys.readouterr().out
    assert cli.main(["engine", "--workspace", str(terminal), "--workspace", str(legacy)]) == 1
    assert "process" in capsys.readouterr().out


def test_cli_config_file_is_loaded(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = tmp_path / "taskwire.toml"
    config_file.write_text("[tasks]\ntasks_file = 'jobs.toml'\n", encoding="utf-8")
    root = tmp_path / "app"
    root.mkdir()
    (root / "jobs.toml").write_text("[tasks.greet]\ncommand = 'echo from-jobs'\n", encoding="utf-8")

    code = cli.main(["--config", str(config_file), "run", "greet", "--workspace", str(root)])

    assert code == 0
    assert "from-jobs" in capsys.readouterr().out


def test_cli_subcommand_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["fetch", "--help"])
    output = capsys.readouterr().out
    assert exc.value.code == 0
    assert "Send one request and print status" in output


def test_cli_top_level_help_examples(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--help"])
    output = capsys.readouterr().out
    assert exc.value.code == 0
    assert "Quick Examples:" in output
    assert "python -m twr run build" in output


def test_cli_print_help_writes_to_requested_stream(capsys: pytest.CaptureFixture[str]) -> None:
    parser = cli.build_parser()
    buffer = io.StringIO()
    parser.print_help(file=buffer)
    output = capsys.readouterr().out
    assert output == ""
    help_text = buffer.getvalue()
    assert "Usage:" in help_text
    assert "taskwire CLI" in help_text
