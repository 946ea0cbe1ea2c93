import sys
import types

import pytest

from quazar import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "quazar"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def _stub_module(monkeypatch, main, expected="quazar.quiz._main"):
    def fake_import(module_name: str):
        assert module_name == expected
        return types.SimpleNamespace(main=main)

    monkeypatch.setattr(cli, "import_module", fake_import)


def test_version_command_handles_missing_package(monkeypatch, capsys):
    def missing(name: str) -> str:
        raise cli.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(cli.metadata, "version", missing)
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


@pytest.mark.parametrize("argv", [["version"], ["--version"], ["-V"]])
def test_version_spellings(argv, capsys):
    assert cli.main(argv) == 0
    assert capsys.readouterr().out.strip() == "0.0-test"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: quazar" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    assert cli.main(argv) == 0
    assert "Usage: quazar" in capsys.readouterr().out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Available commands:" in out
    assert "init" in out
    assert "quiz" in out
    assert "(interactive)" in out


def test_help_known_command(capsys):
    code = cli.main(["help", "quiz"])
    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("quiz: ")
    assert "Run `quazar quiz --help`" in out


@pytest.mark.parametrize("argv", [["help", "does-not-exist"], ["bogus"]])
def test_unknown_command_errors(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


def test_dispatch_passes_arguments_through(monkeypatch):
    before = list(sys.argv)
    captured: dict[str, list[str]] = {}

    def stub_main(argv):
        captured["argv"] = list(argv)
        captured["sys_argv"] = list(sys.argv)
        return 7

    _stub_module(monkeypatch, stub_main)
    code = cli.main(["quiz", "start", "capitals", "--seed", "3"])

    assert code == 7
    assert captured["argv"] == ["start", "capitals", "--seed", "3"]
    assert captured["sys_argv"] == ["quazar quiz", "start", "capitals", "--seed", "3"]
    assert list(sys.argv) == before


def test_dispatch_supports_main_without_parameters(monkeypatch):
    called = []

    def stub_main():
        called.append(sys.argv[0])

    _stub_module(monkeypatch, stub_main, expected="quazar.workspace.cli")
    assert cli.main(["init"]) == 0
    assert called == ["quazar init"]


def test_dispatch_supports_varargs_main(monkeypatch):
    received = []

    def stub_main(*args):
        received.extend(args)
        return 3

    _stub_module(monkeypatch, stub_main)
    assert cli.main(["quiz", "history"]) == 3
    assert received == [["history"]]


@pytest.mark.parametrize(
    "payload, expected_code, expected_err",
    [(5, 5, ""), (None, 0, ""), ("boom", 1, "boom"), (object(), 1, "")],
)
def test_dispatch_normalizes_system_exit(
    monkeypatch, capsys, payload, expected_code, expected_err
):
    def stub_main(argv):
        raise SystemExit(payload)

    _stub_module(monkeypatch, stub_main)
    code = cli.main(["quiz"])
    assert code == expected_code
    assert capsys.readouterr().err.strip() == expected_err


def test_dispatch_normalizes_non_int_return(monkeypatch):
    _stub_module(monkeypatch, lambda argv: "done")
    assert cli.main(["quiz"]) == 0


def test_positional_parameter_count_handles_signature_failure(monkeypatch):
    def boom(_func):
        raise TypeError("no signature")

    monkeypatch.setattr(cli.inspect, "signature", boom)
    assert cli._positional_parameter_count(lambda: None) == 0


def test_init_runs_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "banks", "imported_quizzes", "history"):
        assert (target / entry).is_dir()


def test_quiz_config_init_runs_end_to_end(tmp_path, capsys):
    destination = tmp_path / "quazar.toml"

    code = cli.main(["quiz", "config", "init", "--path", str(destination)])

    captured = capsys.readouterr()
    assert code == 0
    assert destination.exists()
    assert "Wrote quiz config" in captured.out
