from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from rich.console import Console

from fixtures import CAPITALS_BANK, TABLE_ITEM, bank_json
from quazar.quiz import _main as quiz_cli
from quazar.quiz.history import HistoryStore, SessionResult

TWO_CAPITALS = [
    {"id": 1, "question": "Capital of France?", "options": [], "correctAnswer": "Paris"},
    {"id": 2, "question": "Capital of Germany?", "options": [], "correctAnswer": "Berlin"},
]


@pytest.fixture
def ws(tmp_path):
    return tmp_path / "ws"


def _console(monkeypatch, lines=()):
    console = Console(record=True, width=120, color_system=None)
    iterator = iter(lines)
    monkeypatch.setattr(console, "input", lambda *args, **kwargs: next(iterator))
    return console


def _run(argv, ws, console):
    return quiz_cli.main([*argv, "--workspace", str(ws)], console=console)


def _write_bank(ws, name, items):
    path = ws / "banks" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(bank_json(items), encoding="utf-8")
    return path


def test_banks_list_shows_bundled_banks(ws, monkeypatch):
    _write_bank(ws, "quiz_data.json", CAPITALS_BANK)
    console = _console(monkeypatch)

    code = _run(["banks", "list"], ws, console)

    output = console.export_text()
    assert code == 0
    assert "Quiz Data" in output
    assert "bundled" in output


def test_banks_list_without_banks_fails(ws, monkeypatch):
    console = _console(monkeypatch)

    assert _run(["banks", "list"], ws, console) == 1
    assert "No banks found" in console.export_text()


def test_banks_import_copies_into_workspace(ws, tmp_path, monkeypatch):
    source = tmp_path / "cell-bio.json"
    source.write_text(bank_json(CAPITALS_BANK), encoding="utf-8")
    console = _console(monkeypatch)

    code = _run(["banks", "import", str(source)], ws, console)

    assert code == 0
    assert "Imported quiz 'CELL BIO'." in console.export_text()
    assert (ws / "imported_quizzes" / "CELL BIO.json").is_file()


def test_banks_import_rejects_invalid_file(ws, tmp_path, monkeypatch, capsys):
    source = tmp_path / "bad.json"
    source.write_text(json.dumps([{"question": "Q?"}]), encoding="utf-8")

    code = _run(["banks", "import", str(source)], ws, _console(monkeypatch))

    assert code == 1
    assert capsys.readouterr().err.startswith("Error: Invalid quiz format.")


def test_start_runs_session_and_records_history(ws, monkeypatch):
    _write_bank(ws, "capitals.json", TWO_CAPITALS)
    console = _console(monkeypatch, ["", "Paris", "Paris"])

    code = _run(
        ["start", "capitals", "--id", "2", "--seed", "1", "--no-delay"],
        ws,
        console,
    )

    assert code == 0
    assert "Final score: 1/2" in console.export_text()
    history = json.loads(
        (ws / "history" / "quiz_history.json").read_text(encoding="utf-8")
    )
    assert [(item["score"], item["total"]) for item in history] == [(1, 2)]
    log_lines = (ws / "logs" / "quiz.log").read_text(encoding="utf-8").splitlines()
    messages = [json.loads(line)["message"] for line in log_lines]
    assert "Built quiz session" in messages
    assert "Grading complete" in messages


def test_start_table_only_session(ws, tmp_path, monkeypatch):
    _write_bank(ws, "capitals.json", TWO_CAPITALS)
    tables = tmp_path / "tables.json"
    tables.write_text(json.dumps([TABLE_ITEM]), encoding="utf-8")
    console = _console(monkeypatch, ["", "1.2 Paris", "2.2 Berlin", ":submit"])

    code = _run(
        [
            "start",
            "capitals",
            "--mc", "0", "--id", "0", "--tf", "0",
            "--table", str(tables),
            "--no-delay",
        ],
        ws,
        console,
    )

    output = console.export_text()
    assert code == 0
    assert "Fill in the Blank (Table)" in output
    assert "Final score: 1/1" in output


def test_start_quit_records_nothing(ws, monkeypatch):
    _write_bank(ws, "capitals.json", TWO_CAPITALS)
    console = _console(monkeypatch, [":quit"])

    code = _run(["start", "capitals", "--no-delay"], ws, console)

    assert code == 0
    assert "Final score" not in console.export_text()
    assert not (ws / "history" / "quiz_history.json").exists()


@pytest.mark.parametrize(
    "argv, message",
    [
        (["start", "missing"], "Quiz bank not found: missing"),
        (["start", "capitals", "--total", "5"], "exceeds the 2 available"),
        (["start", "capitals", "--mc", "1", "--tf", "2", "--total", "2"], "add up to 3"),
        (["start", "capitals", "--table", "nope.json"], "Failed to load table JSON file"),
    ],
)
def test_start_errors_exit_nonzero(ws, monkeypatch, capsys, argv, message):
    _write_bank(ws, "capitals.json", TWO_CAPITALS)

    code = _run(argv, ws, _console(monkeypatch))

    assert code == 1
    assert message in capsys.readouterr().err


def test_history_lists_and_clears(ws, monkeypatch):
    console = _console(monkeypatch)
    assert _run(["history"], ws, console) == 0
    assert "No quiz history yet." in console.export_text()

    store = HistoryStore(ws / "history" / "quiz_history.json")
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    store.append(SessionResult(1, 2, 50, now))
    store.append(SessionResult(2, 2, 100, now.replace(hour=13)))

    console = _console(monkeypatch)
    assert _run(["history"], ws, console) == 0
    output = console.export_text()
    assert "2/2" in output and "50%" in output
    assert "Attempts: 2 | Total score: 3" in output

    console = _console(monkeypatch)
    assert _run(["history", "--clear"], ws, console) == 0
    assert "Quiz history cleared." in console.export_text()
    assert store.load() == []


def test_config_init_writes_workspace_template(ws, monkeypatch, capsys):
    console = _console(monkeypatch)
    assert _run(["config", "init"], ws, console) == 0
    target = ws / "config" / "quazar.toml"
    assert target.is_file()
    assert "Wrote quiz config" in console.export_text()

    assert _run(["config", "init"], ws, _console(monkeypatch)) == 1
    assert "already exists" in capsys.readouterr().err

    assert _run(["config", "init", "--force"], ws, _console(monkeypatch)) == 0


def test_start_uses_workspace_config(ws, monkeypatch):
    _write_bank(ws, "capitals.json", TWO_CAPITALS)
    config_dir = ws / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "quazar.toml").write_text(
        '[session]\ntotal_questions = 1\ntypes = ["identification"]\n'
        "[grading]\nstep_delay = 0\nfinal_delay = 0\n",
        encoding="utf-8",
    )
    console = _console(monkeypatch, ["", "Paris"])

    code = _run(["start", "capitals", "--seed", "2"], ws, console)

    assert code == 0
    assert "Final score:" in console.export_text()
    assert "/1" in console.export_text()
