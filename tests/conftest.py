from __future__ import annotations

import asyncio
from typing import Callable, Dict

import pytest

from config import RoutingPolicy
from languages import LanguageSupport, load_language_support
from translator.base import BaseTranslator, Provider, UpstreamError
from translator.orchestrator import TranslationOrchestrator


class FakeTranslator(BaseTranslator):
    """In-memory translator that runs the real ``BaseTranslator.translate`` path.

    ``fail`` holds canonical codes that raise an upstream error (``"*"`` fails
    everything). ``reported_source`` is the provider-native source code handed
    back with every translation. ``signal`` is set when a translation starts and
    ``wait_on`` holds every translation until another fake signals it.
    """

    def __init__(
        self,
        provider: Provider,
        languages: LanguageSupport,
        *,
        fail=(),
        detected: str | None = None,
        detect_error: Exception | None = None,
        detect_delay: float = 0.0,
        reported_source: str | None = None,
        missing: str | None = None,
        wait_on: asyncio.Event | None = None,
        signal: asyncio.Event | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(languages=languages)
        self.fail = set(fail)
        self.detected = detected
        self.detect_error = detect_error
        self.detect_delay = detect_delay
        self.reported_source = reported_source
        self.missing = missing
        self.wait_on = wait_on
        self.signal = signal
        self.calls: list[tuple[str | None, str]] = []
        self.detect_calls = 0
        self.closed = False

    def missing_configuration(self) -> str | None:
        return self.missing

    @property
    def translated_codes(self) -> list[str]:
        return [code for _, code in self.calls]

    async def _translate_one(self, text, source_code, target_code):
        canonical = self.languages.normalizer.to_canonical(target_code, self.name)
        self.calls.append((source_code, canonical))
        if self.signal is not None:
            self.signal.set()
        if self.wait_on is not None:
            await asyncio.wait_for(self.wait_on.wait(), timeout=1)
        if "*" in self.fail or canonical in self.fail:
            raise UpstreamError(self.provider, f"upstream rejected {target_code}", status=500)
        return f"{self.name}:{canonical}:{text}", self.reported_source

    async def detect(self, text):
        self.detect_calls += 1
        if self.detect_delay:
            await asyncio.sleep(self.detect_delay)
        if self.detect_error is not None:
            raise self.detect_error
        return self.detected

    async def close(self) -> None:
        self.closed = True
        await super().close()


@pytest.fixture
def languages() -> LanguageSupport:
    return load_language_support()


@pytest.fixture
def routing() -> RoutingPolicy:
    return RoutingPolicy(
        primary_order=["deepl", "google", "m2m", "openai"],
        fallback_order=["openai", "google", "m2m", "deepl"],
        detection_order=["google", "deepl", "openai", "m2m"],
    )


@pytest.fixture
def make_translators(languages) -> Callable[..., Dict[Provider, FakeTranslator]]:
    """Build one fake per provider; keyword arguments configure single providers.

    ``make_translators(deepl={"fail": {"deu"}})`` makes DeepL fail German.
    """

    def factory(**overrides) -> Dict[Provider, FakeTranslator]:
        return {
            provider: FakeTranslator(provider, languages, **overrides.get(provider.value, {}))
            for provider in Provider
        }

    return factory


@pytest.fixture
def make_orchestrator(languages, routing) -> Callable[..., TranslationOrchestrator]:
    def factory(translators, routing_policy: RoutingPolicy | None = None) -> TranslationOrchestrator:
        return TranslationOrchestrator(translators, languages, routing_policy or routing)

    return factory
