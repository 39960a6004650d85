"""
Tests for the caller-side pieces: response store, status check, factory and settings.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from config import AppSettings, EngineSecrets, RoutingPolicy
from translator.base import Provider, UpstreamError
from translator.deepl_api import DeepLAPITranslator
from translator.factory import build_orchestrator, build_translator, build_translators, get_available_engines
from translator.google import GoogleTranslator
from translator.orchestrator import TranslationOrchestrator
from translator.status import check_status
from utils.cache import ResponseStore, make_cache_key


# ---------------------------------------------------------------------------
# ResponseStore
# ---------------------------------------------------------------------------

class TestResponseStore:
    def test_store_and_lookup(self, tmp_path):
        store = ResponseStore(tmp_path / "responses.json")
        body = {"spa": "Hola", "metadata": {"src_lang": "eng"}}

        store.store("Hello", ["spa", "deu"], body, "eng")

        assert store.lookup("Hello", ["deu", "spa"], "eng") == body
        assert store.lookup("Hello", ["spa"], "eng") is None
        assert store.lookup("Hello", ["spa", "deu"]) is None
        assert len(store) == 1

    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "nested" / "responses.json"
        ResponseStore(path).store("Hello", ["spa"], {"spa": "Hola"})

        assert ResponseStore(path).lookup("Hello", ["spa"]) == {"spa": "Hola"}

    def test_manual_flush(self, tmp_path):
        path = tmp_path / "responses.json"
        store = ResponseStore(path, auto_flush=False)
        store.store("Hello", ["spa"], {"spa": "Hola"})

        assert not path.exists()
        store.flush()
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved[make_cache_key("Hello", None, ["spa"])]["response"] == {"spa": "Hola"}
        assert not (tmp_path / "responses.json.tmp").exists()

    def test_old_entries_expire(self, tmp_path):
        path = tmp_path / "responses.json"
        old = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
        key = make_cache_key("Hello", "eng", ["spa"])
        path.write_text(json.dumps({key: {"stored_at": old, "response": {"spa": "Hola"}}}), encoding="utf-8")

        assert ResponseStore(path).lookup("Hello", ["spa"], "eng") == {"spa": "Hola"}
        assert ResponseStore(path, max_age=timedelta(days=1)).lookup("Hello", ["spa"], "eng") is None

    def test_naive_timestamps_read_as_utc(self, tmp_path):
        path = tmp_path / "responses.json"
        key = make_cache_key("Hello", "eng", ["spa"])
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        entries = {
            key: {"stored_at": (now - timedelta(days=3)).isoformat(), "response": {"spa": "Hola"}},
            make_cache_key("Bye", "eng", ["spa"]): {"stored_at": now.isoformat(), "response": {"spa": "Adiós"}},
        }
        path.write_text(json.dumps(entries), encoding="utf-8")
        store = ResponseStore(path, max_age=timedelta(days=1))

        assert store.lookup("Hello", ["spa"], "eng") is None
        assert store.lookup("Bye", ["spa"], "eng") == {"spa": "Adiós"}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "responses.json"
        path.write_text("{not json", encoding="utf-8")

        assert len(ResponseStore(path)) == 0

    def test_cache_key(self):
        assert make_cache_key("Hi", None, ["spa", "deu", "spa"]) == "auto::deu,spa::default::Hi"

    def test_source_case_shares_entry(self, tmp_path):
        store = ResponseStore(tmp_path / "responses.json")
        store.store("Hello", ["spa"], {"spa": "Hola"}, " ENG ")

        assert store.lookup("Hello", ["spa"], "eng") == {"spa": "Hola"}
        assert make_cache_key("Hello", "", ["spa"]) == make_cache_key("Hello", None, ["spa"])

    def test_priority_order_is_part_of_key(self, tmp_path):
        store = ResponseStore(tmp_path / "responses.json")
        store.store("Hello", ["spa"], {"spa": "Hola"}, "eng", priority=["google", "deepl"])

        assert store.lookup("Hello", ["spa"], "eng", priority=["Google", "deepl"]) == {"spa": "Hola"}
        assert store.lookup("Hello", ["spa"], "eng", priority=["deepl", "google"]) is None
        assert store.lookup("Hello", ["spa"], "eng") is None
        assert make_cache_key("Hi", None, ["spa"], []) == make_cache_key("Hi", None, ["spa"])


# ---------------------------------------------------------------------------
# Status check
# ---------------------------------------------------------------------------

class TestStatus:
    async def test_report(self, make_translators):
        translators = make_translators(
            google={"fail": {"*"}, "detected": "eng"},
            m2m={"detect_error": UpstreamError(Provider.M2M, "cannot detect")},
            openai={"missing": "Missing OpenAI API key"},
            deepl={"detected": "eng"},
        )

        report = await check_status(translators)

        assert report["translators"]["deepl"]["translation"] == "deepl:spa:Hello world"
        assert report["translators"]["google"]["status"] == "error"
        assert report["translators"]["openai"]["error"] == "Missing OpenAI API key"
        assert report["detectors"]["m2m"] == {"status": "error", "error": "cannot detect", "response_time_ms": None}
        assert report["detectors"]["deepl"]["detected_language"] == "eng"
        assert report["environment"]["openai"] is False
        assert report["summary"]["working_translators"] == ["m2m", "deepl"]
        assert report["summary"]["all_systems_operational"] is False
        # DeepL is checked without a source language.
        assert translators[Provider.DEEPL].calls == [(None, "spa")]
        assert translators[Provider.M2M].calls == [("en", "spa")]


# ---------------------------------------------------------------------------
# Factory and settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        routing=RoutingPolicy(
            primary_order=["google", "deepl"],
            fallback_order=["openai"],
            detection_order=["deepl"],
        ),
        secrets=EngineSecrets(
            deepl_api_key="key:fx",
            deepl_api_url="https://api-free.deepl.com/v2/translate",
            google_project_id=None,
            google_access_token=None,
            openai_api_key=None,
            cloudflare_account_id=None,
            cloudflare_api_token=None,
        ),
    )


class TestFactory:
    def test_build_translator_by_name(self, languages, settings):
        deepl = build_translator(" DeepL ", languages=languages, settings=settings)

        assert isinstance(deepl, DeepLAPITranslator)
        assert deepl.is_configured
        assert deepl.timeout == settings.translator.session_timeout

    def test_deepl_plan_selects_endpoint(self, languages, settings):
        settings.secrets.deepl_api_key = "pro-key"
        settings.secrets.deepl_api_plan = "pro"
        settings.secrets.deepl_api_url = None

        deepl = build_translator(Provider.DEEPL, languages=languages, settings=settings)

        assert deepl.api_url == DeepLAPITranslator.PRO_API_URL

    def test_unconfigured_translators_are_still_built(self, languages, settings):
        google = build_translator(Provider.GOOGLE, languages=languages, settings=settings)

        assert isinstance(google, GoogleTranslator)
        assert not google.is_configured

    def test_unknown_engine(self, languages, settings):
        with pytest.raises(ValueError, match="Unsupported translator engine"):
            build_translator("babelfish", languages=languages, settings=settings)

    def test_build_translators_covers_every_provider(self, languages, settings):
        translators = build_translators(languages=languages, settings=settings)
        assert set(translators) == set(Provider)
        assert all(translator.provider is provider for provider, translator in translators.items())

    def test_build_orchestrator_uses_routing(self, settings):
        orchestrator = build_orchestrator(settings=settings)

        assert isinstance(orchestrator, TranslationOrchestrator)
        assert orchestrator.primary_order == [Provider.GOOGLE, Provider.DEEPL]
        assert orchestrator.fallback_order == [Provider.OPENAI]
        assert orchestrator.detection_order[0] is Provider.DEEPL
        assert set(orchestrator.detection_order) == set(Provider)

    def test_available_engines(self):
        engines = get_available_engines()
        engines["extra"] = "x"
        assert set(get_available_engines()) == {p.value for p in Provider}


class TestSettings:
    def test_routing_from_environment(self, monkeypatch):
        monkeypatch.setenv("MULTITRANSLATE_PRIMARY_ORDER", "Google, openai ,")
        monkeypatch.delenv("MULTITRANSLATE_FALLBACK_ORDER", raising=False)

        policy = RoutingPolicy()

        assert policy.primary_order == ["google", "openai"]
        assert policy.fallback_order == ["openai", "google", "m2m", "deepl"]

    def test_secrets_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEEPL_API_KEY", "abc")
        monkeypatch.setenv("MULTITRANSLATE_STORE", "/tmp/store.json")

        assert EngineSecrets().deepl_api_key == "abc"
        assert str(AppSettings().response_store_path) == "/tmp/store.json"
