"""
Translator Factory

Factory for creating translator instances and the orchestrator around them.
Supports: M2M100 (Workers AI), DeepL API, Google Cloud Translation, OpenAI
"""
from __future__ import annotations

from typing import Dict, Optional

from config import SETTINGS, AppSettings
from languages import LanguageSupport, load_language_support

from .base import BaseTranslator, Provider
from .deepl_api import DeepLAPITranslator
from .google import GoogleTranslator
from .llm import OpenAITranslator
from .m2m import M2MTranslator
from .orchestrator import TranslationOrchestrator


# Available translation engines
AVAILABLE_ENGINES = {
    Provider.M2M.value: M2MTranslator.display_name,
    Provider.DEEPL.value: DeepLAPITranslator.display_name,
    Provider.GOOGLE.value: GoogleTranslator.display_name,
    Provider.OPENAI.value: OpenAITranslator.display_name,
}


def get_available_engines() -> dict[str, str]:
    """Get available translation engines with display names."""
    return AVAILABLE_ENGINES.copy()


def build_translator(
    engine_name: str | Provider,
    *,
    languages: Optional[LanguageSupport] = None,
    settings: Optional[AppSettings] = None,
    proxy: Optional[str] = None,
) -> BaseTranslator:
    """Build a translator instance.

    Args:
        engine_name: Name of the engine (m2m, deepl, google, openai)
        languages: Shared language data (loaded once when omitted)
        settings: Application settings (module defaults when omitted)
        proxy: Optional proxy URL

    Returns:
        BaseTranslator instance. Missing credentials do not raise here; the
        translator fails fast for its languages when called.

    Raises:
        ValueError: If engine is not supported
    """
    settings = settings or SETTINGS
    languages = languages or load_language_support()
    if isinstance(engine_name, Provider):
        engine = engine_name
    else:
        try:
            engine = Provider(engine_name.strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported translator engine: {engine_name}") from None

    common = dict(
        languages=languages,
        timeout=settings.translator.session_timeout,
        proxy=proxy or settings.translator.proxy_url,
    )
    secrets = settings.secrets

    if engine is Provider.M2M:
        return M2MTranslator(
            account_id=secrets.cloudflare_account_id,
            api_token=secrets.cloudflare_api_token,
            model=settings.translator.m2m_model,
            **common,
        )

    if engine is Provider.DEEPL:
        return DeepLAPITranslator(
            api_key=secrets.deepl_api_key,
            plan=secrets.deepl_api_plan,
            api_url=secrets.deepl_api_url,
            **common,
        )

    if engine is Provider.GOOGLE:
        return GoogleTranslator(
            project_id=secrets.google_project_id,
            access_token=secrets.google_access_token,
            api_url=secrets.google_api_url,
            **common,
        )

    return OpenAITranslator(
        api_key=secrets.openai_api_key,
        model=settings.translator.openai_model,
        api_url=secrets.openai_api_url,
        **common,
    )


def build_translators(
    *,
    languages: Optional[LanguageSupport] = None,
    settings: Optional[AppSettings] = None,
    proxy: Optional[str] = None,
) -> Dict[Provider, BaseTranslator]:
    languages = languages or load_language_support()
    return {
        provider: build_translator(provider, languages=languages, settings=settings, proxy=proxy)
        for provider in Provider
    }


def build_orchestrator(
    *,
    settings: Optional[AppSettings] = None,
    proxy: Optional[str] = None,
) -> TranslationOrchestrator:
    settings = settings or SETTINGS
    languages = load_language_support()
    translators = build_translators(languages=languages, settings=settings, proxy=proxy)
    return TranslationOrchestrator(translators, languages, settings.routing)
