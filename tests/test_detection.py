"""
Tests for translator/detection.py.
"""
from __future__ import annotations

from translator.base import Provider, UpstreamError
from translator.detection import DetectionArbiter
from translator.m2m import M2MTranslator


class TestDetectionArbiter:
    async def test_candidate_order_beats_arrival_order(self, make_translators):
        translators = make_translators(
            google={"detected": "fra", "detect_delay": 0.05},
            deepl={"detected": "ita"},
        )
        arbiter = DetectionArbiter(translators)

        outcome = await arbiter.detect("Bonjour", [Provider.GOOGLE, Provider.DEEPL])

        assert outcome.primary == "fra"
        assert outcome.primary_provider is Provider.GOOGLE
        assert outcome.per_provider == {Provider.GOOGLE: "fra", Provider.DEEPL: "ita"}
        assert outcome.errors == {}

    async def test_failures_do_not_abort_siblings(self, make_translators):
        translators = make_translators(
            google={"detect_error": UpstreamError(Provider.GOOGLE, "quota")},
            deepl={"detect_error": RuntimeError("boom")},
            openai={"detected": "deu"},
        )
        arbiter = DetectionArbiter(translators)

        outcome = await arbiter.detect("Hallo", [Provider.GOOGLE, Provider.DEEPL, Provider.OPENAI])

        assert outcome.primary == "deu"
        assert outcome.primary_provider is Provider.OPENAI
        assert outcome.errors == {Provider.GOOGLE: "quota", Provider.DEEPL: "RuntimeError: boom"}
        assert all(t.detect_calls == 1 for p, t in translators.items() if p is not Provider.M2M)

    async def test_unrecognised_language_is_recorded(self, make_translators):
        arbiter = DetectionArbiter(make_translators())

        outcome = await arbiter.detect("???", [Provider.GOOGLE])

        assert outcome.primary is None
        assert outcome.per_provider == {Provider.GOOGLE: None}
        assert outcome.errors == {Provider.GOOGLE: "no recognised language detected"}

    async def test_defaults_to_every_translator(self, make_translators):
        translators = make_translators(m2m={"detected": "spa"})
        outcome = await DetectionArbiter(translators).detect("Hola")

        assert outcome.primary == "spa"
        assert set(outcome.per_provider) == set(Provider)

    async def test_unknown_candidates_are_skipped(self, make_translators):
        translators = make_translators()
        del translators[Provider.DEEPL]

        outcome = await DetectionArbiter(translators).detect("Hello", [Provider.DEEPL])

        assert outcome.primary is None
        assert outcome.per_provider == {}

    async def test_m2m_cannot_detect(self, languages):
        m2m = M2MTranslator(account_id="acc", api_token="tok", languages=languages)

        outcome = await DetectionArbiter({Provider.M2M: m2m}).detect("Hello")

        assert outcome.primary is None
        assert outcome.errors == {Provider.M2M: "m2m100 does not report the source language"}
