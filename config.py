from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import os


BASE_DIR = Path(__file__).resolve().parent
DEFAULT_STORE_PATH = BASE_DIR / "storage" / "translation_responses.json"

DEFAULT_PRIMARY_ORDER = "deepl,google,m2m,openai"
# Broader providers first for the retry pass.
DEFAULT_FALLBACK_ORDER = "openai,google,m2m,deepl"
DEFAULT_DETECTION_ORDER = "google,deepl,openai,m2m"


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    return float(raw) if raw else None


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name) or default
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


@dataclass(slots=True)
class RoutingPolicy:
    primary_order: List[str] = field(default_factory=lambda: _env_list("MULTITRANSLATE_PRIMARY_ORDER", DEFAULT_PRIMARY_ORDER))
    fallback_order: List[str] = field(default_factory=lambda: _env_list("MULTITRANSLATE_FALLBACK_ORDER", DEFAULT_FALLBACK_ORDER))
    detection_order: List[str] = field(default_factory=lambda: _env_list("MULTITRANSLATE_DETECTION_ORDER", DEFAULT_DETECTION_ORDER))


@dataclass(slots=True)
class TranslatorSettings:
    session_timeout: float = 20.0
    proxy_url: str | None = field(default_factory=lambda: os.getenv("MULTITRANSLATE_PROXY"))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o"))
    m2m_model: str = field(default_factory=lambda: os.getenv("M2M_MODEL", "@cf/meta/m2m100-1.2b"))


@dataclass(slots=True)
class EngineSecrets:
    deepl_api_key: str | None = field(default_factory=lambda: os.getenv("DEEPL_API_KEY"))
    deepl_api_plan: str | None = field(default_factory=lambda: os.getenv("DEEPL_API_PLAN"))
    deepl_api_url: str | None = field(default_factory=lambda: os.getenv("DEEPL_API_ENDPOINT"))
    google_project_id: str | None = field(default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT_ID"))
    google_access_token: str | None = field(default_factory=lambda: os.getenv("GOOGLE_TRANSLATE_ACCESS_TOKEN"))
    google_api_url: str = field(default_factory=lambda: os.getenv("GOOGLE_TRANSLATE_ENDPOINT", "https://translation.googleapis.com/v3"))
    openai_api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_api_url: str = field(default_factory=lambda: os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions"))
    cloudflare_account_id: str | None = field(default_factory=lambda: os.getenv("CLOUDFLARE_ACCOUNT_ID"))
    cloudflare_api_token: str | None = field(default_factory=lambda: os.getenv("CLOUDFLARE_API_TOKEN"))


@dataclass(slots=True)
class AppSettings:
    routing: RoutingPolicy = field(default_factory=RoutingPolicy)
    translator: TranslatorSettings = field(default_factory=TranslatorSettings)
    secrets: EngineSecrets = field(default_factory=EngineSecrets)
    response_store_path: Path = field(default_factory=lambda: Path(os.getenv("MULTITRANSLATE_STORE", DEFAULT_STORE_PATH)))
    response_store_max_age_hours: float | None = field(default_factory=lambda: _env_float("MULTITRANSLATE_STORE_MAX_AGE_HOURS"))


SETTINGS = AppSettings()
