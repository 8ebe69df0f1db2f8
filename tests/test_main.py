"""Tests for config loading, argument validation and the command steps."""
import io
import json
import logging

import click
import pytest
import requests
import yaml

import main
from wk_jlpt.errors import ConfigError


class StubClient:
    """Serves canned subjects/assignments keyed by the filters used."""

    def __init__(self, subjects, assignments, materials=()):
        self.subjects = subjects
        self.assignments = assignments
        self.materials = list(materials)
        self.started = []
        self.created = []
        self.updated = []

    def get_subjects(self, types=None, **filters):
        return [s for s in self.subjects if types is None or s.type in types]

    def get_assignments(self, **filters):
        out = self.assignments
        if filters.get("started"):
            out = [a for a in out if a.started]
        if filters.get("immediately_available_for_lessons"):
            out = [a for a in out if a.available_for_lessons]
        return out

    def get_study_materials(self, **filters):
        return self.materials

    def start_assignment(self, assignment_id):
        self.started.append(assignment_id)

    def create_study_material(self, subject_id, fields):
        self.created.append((subject_id, fields))

    def update_study_material(self, study_material_id, fields):
        self.updated.append((study_material_id, fields))


@pytest.fixture
def cfg(tmp_path):
    rows = [
        {"slug": "山", "japanese": [{"word": "山", "reading": "やま"}], "senses": [{"tags": []}]},
        {"slug": "川-1", "japanese": [{"word": "川", "reading": "かわ"}], "senses": [{"tags": []}]},
        {"slug": "大人", "japanese": [{"word": "大人", "reading": "おとな"}], "senses": [{"tags": []}]},
        {"slug": "鬱", "japanese": [{"word": "鬱", "reading": "うつ"}], "senses": [{"tags": []}]},
    ]
    (tmp_path / "jlpt-n5.json").write_text(json.dumps(rows, ensure_ascii=False), encoding="utf-8")
    kanji = {"山": {"wk_level": 1}, "川": {"wk_level": 2}, "大": {"wk_level": 1}, "人": {"wk_level": 1}}
    (tmp_path / "kanji.json").write_text(json.dumps(kanji, ensure_ascii=False), encoding="utf-8")
    return main._deep_update(main.DEFAULT_CONFIG, {"jlpt": {"data_dir": str(tmp_path)}, "paths": {"logs_dir": ""}})


@pytest.fixture
def stub(make_subject, make_assignment):
    subjects = [
        make_subject(1, "山", type="kanji", level=1),
        make_subject(2, "大", type="kanji", level=1),
        make_subject(3, "人", type="kanji", level=1),
        make_subject(10, "大人", level=3),
        make_subject(11, "山", level=1),
        make_subject(12, "川", level=2),
        make_subject(13, "わたし", type="kana_vocabulary", level=1),
        make_subject(20, "山", type="radical", level=1),
    ]
    assignments = [
        make_assignment(100, 1, started=True, srs_stage=5, subject_type="kanji"),
        make_assignment(101, 2, started=True, srs_stage=1, subject_type="kanji"),
        make_assignment(102, 3, started=True, srs_stage=1, subject_type="kanji"),
        make_assignment(110, 10),
        make_assignment(111, 11),
        make_assignment(112, 12),
        make_assignment(113, 13),
    ]
    return StubClient(subjects, assignments)


# ── Config ────────────────────────────────────────────────────────

def test_load_config_defaults_when_missing(tmp_path):
    assert main.load_config(tmp_path / "nope.yaml") == main.DEFAULT_CONFIG


def test_load_config_merges(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"jlpt": {"max_level": 4}, "api": {"timeout_sec": 5}}), encoding="utf-8")
    cfg = main.load_config(path)
    assert cfg["jlpt"]["max_level"] == 4
    assert cfg["jlpt"]["kanji_file"] == "kanji.json"
    assert cfg["api"]["timeout_sec"] == 5
    assert cfg["api"]["revision"] == "20170710"


def test_load_config_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    assert main.load_config(path) == main.DEFAULT_CONFIG


def test_build_client_requires_token():
    with pytest.raises(ConfigError):
        main.build_client(main.DEFAULT_CONFIG, None)


def test_build_client_config():
    client = main.build_client(main._deep_update(main.DEFAULT_CONFIG, {"api": {"page_size": 100}}), "tok")
    assert client.config.token == "tok"
    assert client.config.page_size == 100


@pytest.mark.parametrize("value", [0, -3, "x"])
def test_positive_int_rejects(value):
    with pytest.raises(ConfigError):
        main._positive_int(value, "n")


# ── CLI ───────────────────────────────────────────────────────────

@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text(yaml.safe_dump({"paths": {"logs_dir": ""}}), encoding="utf-8")
    built = []

    class RecordingClient:
        def __init__(self, config):
            built.append(config)

    monkeypatch.setattr(main, "WaniKaniClient", RecordingClient)
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    yield built
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in saved[0]:
        root.addHandler(h)
    root.setLevel(saved[1])


def test_move_rejects_non_positive_number(cli_env, monkeypatch):
    monkeypatch.setenv(main.TOKEN_ENV, "tok")
    assert main.main(["move", "-n", "0"]) == 1
    assert cli_env == []


def test_missing_token_aborts(cli_env, monkeypatch):
    monkeypatch.delenv(main.TOKEN_ENV, raising=False)
    monkeypatch.setattr(main, "load_dotenv", lambda *args, **kwargs: False)
    assert main.main(["stats"]) == 1
    assert cli_env == []


def test_transport_error_exits_nonzero(cli_env, monkeypatch):
    monkeypatch.setenv(main.TOKEN_ENV, "tok")

    def boom(client, out):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(main, "step_stats", boom)
    assert main.main(["stats"]) == 1


def test_stats_success(cli_env, monkeypatch):
    monkeypatch.setenv(main.TOKEN_ENV, "tok")
    calls = []
    monkeypatch.setattr(main, "step_stats", lambda client, out: calls.append(client))
    assert main.main(["stats"]) == 0
    assert len(calls) == 1
    assert cli_env[0].token == "tok"


def test_dotenv_read_from_working_directory(cli_env, monkeypatch, tmp_path):
    monkeypatch.setenv(main.TOKEN_ENV, "")
    monkeypatch.delenv(main.TOKEN_ENV)
    (tmp_path / ".env").write_text(f"{main.TOKEN_ENV}=abc\n", encoding="utf-8")
    monkeypatch.setattr(main, "step_stats", lambda client, out: None)
    assert main.main(["stats"]) == 0
    assert cli_env[0].token == "abc"


def test_malformed_config_falls_back_to_defaults(cli_env, monkeypatch, tmp_path):
    (tmp_path / "config.yaml").write_text("paths: [unclosed\n", encoding="utf-8")
    assert main.load_config(tmp_path / "config.yaml") == main.DEFAULT_CONFIG

    monkeypatch.setenv(main.TOKEN_ENV, "tok")
    monkeypatch.setattr(main, "_setup_logging", lambda cfg, verbose: None)
    monkeypatch.setattr(main, "step_stats", lambda client, out: None)
    assert main.main(["stats"]) == 0
    assert cli_env[0].base_url == main.DEFAULT_CONFIG["api"]["base_url"]


@pytest.fixture
def cli_client(cli_env, monkeypatch, stub):
    """Route the CLI to the canned stub while still recording the config."""

    def build(config):
        cli_env.append(config)
        return stub

    monkeypatch.setenv(main.TOKEN_ENV, "tok")
    monkeypatch.setattr(main, "WaniKaniClient", build)
    return stub


def test_cli_show(cfg, cli_client, capsys):
    cli_client.subjects = [s for s in cli_client.subjects if s.characters != "山" or s.type != "vocabulary"]
    assert main.main(["show", "-j", "5"]) == 0
    assert capsys.readouterr().out.splitlines() == ["山 (やま)"]


def test_cli_select_yes(cli_client, capsys):
    assert main.main(["select", "-c", "人", "--yes"]) == 0
    assert cli_client.started == [110]
    assert "Total vocabulary moved to review: 1" in capsys.readouterr().out


def test_cli_select_abort_is_reported_without_traceback(cli_client, monkeypatch, capsys):
    def interrupted(*args, **kwargs):
        raise click.Abort()

    monkeypatch.setattr(click, "confirm", interrupted)
    assert main.main(["select", "-c", "人"]) == 1
    assert cli_client.started == []
    err = capsys.readouterr().err
    assert "[STEP] select aborted" in err
    assert "Traceback" not in err


def test_cli_radicals_export_stdout(cli_client, capsys):
    assert main.main(["radicals-export"]) == 0
    docs = yaml.safe_load(capsys.readouterr().out)
    assert [d["radical_subject"]["id"] for d in docs] == [20]
    assert docs[0]["kanji_subject"]["id"] == 1


def test_cli_radicals_export_to_file(cli_client, tmp_path):
    path = tmp_path / "radicals.yaml"
    assert main.main(["radicals-export", "-o", str(path)]) == 0
    assert yaml.safe_load(path.read_text(encoding="utf-8"))[0]["radical_subject"]["characters"] == "山"


def test_cli_radicals_export_failure_keeps_existing_file(cli_client, tmp_path):
    path = tmp_path / "radicals.yaml"
    path.write_text("- edited: notes\n", encoding="utf-8")

    def offline(**filters):
        raise requests.ConnectionError("offline")

    cli_client.get_study_materials = offline
    assert main.main(["radicals-export", "-o", str(path)]) == 1
    assert path.read_text(encoding="utf-8") == "- edited: notes\n"


def _write_export(path, meaning_note):
    docs = [{"radical_subject": {"id": 20, "slug": "mountain"}, "study_material": {"meaning_note": meaning_note}}]
    path.write_text(yaml.safe_dump(docs), encoding="utf-8")


def test_cli_radicals_sync(cli_client, tmp_path, capsys):
    path = tmp_path / "radicals.yaml"
    _write_export(path, "peak")
    assert main.main(["radicals-sync", "-f", str(path)]) == 0
    assert cli_client.created == [(20, {"meaning_note": "peak", "reading_note": "", "meaning_synonyms": []})]
    assert capsys.readouterr().out.strip() == "Created: 1 Updated: 0 Unchanged: 0"


def test_cli_radicals_sync_dry_run(cli_client, tmp_path, capsys):
    path = tmp_path / "radicals.yaml"
    _write_export(path, "peak")
    assert main.main(["radicals-sync", "-f", str(path), "--dry-run"]) == 0
    assert cli_client.created == []
    assert capsys.readouterr().out.strip() == "Created: 1 Updated: 0 Unchanged: 0 (dry run)"


def test_cli_radicals_sync_missing_file(cli_env, monkeypatch, tmp_path):
    monkeypatch.setenv(main.TOKEN_ENV, "tok")
    assert main.main(["radicals-sync", "-f", str(tmp_path / "missing.yaml")]) == 1
    assert cli_env == []


# ── Steps ─────────────────────────────────────────────────────────

def test_step_move(cfg, stub):
    out = io.StringIO()
    main.step_move(stub, cfg, number=2, jlpt_level=5, out=out)
    # 大人, 山, 川 match the list, わたし is kana-only; first two in subject order move.
    assert stub.started == [110, 111]
    lines = out.getvalue().splitlines()
    assert lines[0] == "Moved 大人 (Level 3) to review"
    assert "Total vocabulary moved to review: 2" in lines
    assert "Not moved: 2" in lines


def test_step_show(cfg, stub):
    stub.subjects = [s for s in stub.subjects if s.characters != "山" or s.type == "kanji"]
    out = io.StringIO()
    main.step_show(stub, cfg, jlpt_level=5, out=out)
    # 山 is readable and no longer taught; 川 and 大人 are taught; 鬱 uses an unstarted kanji.
    assert out.getvalue().splitlines() == ["山 (やま)"]


def test_step_vocab_list(cfg, stub):
    out = io.StringIO()
    main.step_vocab_list(stub, cfg, jlpt_level=5, out=out)
    assert out.getvalue().splitlines() == ["鬱,3", "大人,3", "川,2", "山,1"]


def test_step_stats(stub):
    out = io.StringIO()
    main.step_stats(stub, out)
    assert out.getvalue().splitlines() == ["1: 2", "5: 1"]


def test_step_select_with_confirm(stub):
    out = io.StringIO()
    main.step_select(stub, "人", None, None, confirm=lambda item: True, out=out)
    assert stub.started == [110]
    assert out.getvalue().strip() == "Total vocabulary moved to review: 1"
