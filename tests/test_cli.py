from __future__ import annotations

import pytest
from typer.testing import CliRunner

import cli
from translator.base import Provider

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def fake_orchestrator(monkeypatch, make_translators, make_orchestrator):
    translators = make_translators(deepl={"fail": {"deu"}})
    monkeypatch.setattr(cli, "build_orchestrator", lambda proxy=None: make_orchestrator(translators))
    return translators


def test_translate_json(fake_orchestrator):
    result = runner.invoke(cli.app, ["translate", "Hello", "-t", "spa,deu", "-s", "eng", "--json", "--no-cache"])

    assert result.exit_code == 0, result.output
    assert "deepl:spa:Hello" in result.output
    assert "openai:deu:Hello" in result.output
    assert fake_orchestrator[Provider.DEEPL].closed


def test_translate_table_uses_store(fake_orchestrator, monkeypatch, tmp_path):
    monkeypatch.setattr(cli.SETTINGS, "response_store_path", tmp_path / "store.json")

    first = runner.invoke(cli.app, ["translate", "Hello", "-t", "spa", "-s", "eng"])
    second = runner.invoke(cli.app, ["translate", "Hello", "-t", "spa", "-s", "eng"])

    assert first.exit_code == 0, first.output
    assert "deepl:spa:Hello" in first.output
    assert "Using stored response" in second.output
    assert fake_orchestrator[Provider.DEEPL].calls == [("EN", "spa")]


def test_store_keys_follow_source_case_and_priority(fake_orchestrator, monkeypatch, tmp_path):
    monkeypatch.setattr(cli.SETTINGS, "response_store_path", tmp_path / "store.json")

    runner.invoke(cli.app, ["translate", "Hello", "-t", "spa", "-s", "eng", "--json"])
    same = runner.invoke(cli.app, ["translate", "Hello", "-t", "spa", "-s", "ENG", "--json"])
    rerouted = runner.invoke(cli.app, ["translate", "Hello", "-t", "spa", "-s", "eng", "-p", "google", "--json"])

    assert "Using stored response" in same.output
    assert "Using stored response" not in rerouted.output
    assert "google:spa:Hello" in rerouted.output
    assert fake_orchestrator[Provider.DEEPL].calls == [("EN", "spa")]


def test_translate_rejected(fake_orchestrator):
    result = runner.invoke(cli.app, ["translate", "Hello", "-t", " , ", "--no-cache"])

    assert result.exit_code == 2
    assert "No target languages provided" in result.output


def test_assign():
    result = runner.invoke(cli.app, ["assign", "-t", "spa,lat,zzz", "-p", "deepl,google,bogus"])

    assert result.exit_code == 0, result.output
    assert "Ignoring unknown providers" in result.output
    assert '"unsupported"' in result.output
    assert '"lat"' in result.output


def test_languages_for_one_provider():
    result = runner.invoke(cli.app, ["languages", "--provider", "deepl"])

    assert result.exit_code == 0, result.output
    assert "German" in result.output
    assert "Latin" not in result.output
