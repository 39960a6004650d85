from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiohttp
from loguru import logger

from languages import Direction, LanguageSupport


class Provider(str, Enum):
    M2M = "m2m"
    DEEPL = "deepl"
    GOOGLE = "google"
    OPENAI = "openai"


def parse_providers(value: str | Sequence[str] | None) -> Tuple[List[Provider], List[str]]:
    """Parse a provider list given as a sequence or a comma-separated string.

    Returns the recognised providers (deduplicated, order kept) and the names
    that were not recognised. ``"auto"`` and blank entries are skipped.
    """
    if value is None:
        return [], []
    items = value.split(",") if isinstance(value, str) else list(value)
    providers: List[Provider] = []
    ignored: List[str] = []
    for item in items:
        name = item.value if isinstance(item, Provider) else str(item).strip().lower()
        if not name or name == "auto":
            continue
        try:
            provider = Provider(name)
        except ValueError:
            ignored.append(name)
            continue
        if provider not in providers:
            providers.append(provider)
    return providers, ignored


class ProviderError(Exception):
    """Failure raised by a provider adapter for one upstream operation."""

    def __init__(self, provider: Provider, message: str) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message


class ConfigurationError(ProviderError):
    """The adapter is missing credentials or endpoints and cannot call upstream."""


class UpstreamError(ProviderError):
    """HTTP failure or malformed payload from the upstream service."""

    def __init__(self, provider: Provider, message: str, *, status: int | None = None) -> None:
        super().__init__(provider, message)
        self.status = status


class DetectionUnsupported(ProviderError):
    """The provider cannot report the language of a text."""


@dataclass(slots=True)
class ProviderResult:
    provider: Provider
    translations: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    detected_source: str | None = None


class BaseTranslator(ABC):
    """Common contract for the upstream translation services.

    Callers speak canonical 3-letter codes only. ``translate`` re-checks the
    capability set, issues one upstream request per target language
    concurrently and reports per-language failures instead of raising.
    """

    provider: Provider
    display_name: str = "base"

    def __init__(
        self,
        *,
        languages: LanguageSupport,
        timeout: float = 20.0,
        proxy: str | None = None,
    ) -> None:
        self.languages = languages
        self.timeout = timeout
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return self.provider.value

    def missing_configuration(self) -> str | None:
        """Return a description of missing settings, or None when ready."""
        return None

    @property
    def is_configured(self) -> bool:
        return self.missing_configuration() is None

    def _require_configured(self) -> None:
        problem = self.missing_configuration()
        if problem:
            raise ConfigurationError(self.provider, problem)

    def _session_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(headers=self._session_headers(), timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _describe_error(self, status: int, body: str) -> str:
        details = body.strip()
        if not details:
            return f"HTTP {status} with empty response body"
        try:
            data = json.loads(details)
        except ValueError:
            return f"HTTP {status} - {details[:200]}"
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return f"HTTP {status} - {error['message']}"
            if data.get("message"):
                return f"HTTP {status} - {data['message']}"
            if isinstance(error, str) and error:
                return f"HTTP {status} - {error}"
        return f"HTTP {status} - {details[:200]}"

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        session = await self._get_session()
        try:
            async with session.post(url, json=payload, proxy=self.proxy) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise UpstreamError(self.provider, self._describe_error(resp.status, body), status=resp.status)
                return await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise UpstreamError(self.provider, f"connection error: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise UpstreamError(self.provider, f"request timed out after {self.timeout}s") from exc
        except ValueError as exc:
            raise UpstreamError(self.provider, f"malformed JSON response: {exc}") from exc

    def _resolve_source(self, source: str | None) -> str | None:
        if not source:
            return None
        if not self.languages.capabilities.supports(source, self.name, Direction.SOURCE):
            logger.debug(f"{self.name}: source language {source} not accepted, letting upstream detect it")
            return None
        return self.languages.normalizer.to_provider_code(source, self.name, Direction.SOURCE)

    async def translate(self, text: str, source: str | None, targets: Sequence[str]) -> ProviderResult:
        result = ProviderResult(provider=self.provider)
        pending: List[str] = []
        for code in dict.fromkeys(targets):
            if self.languages.capabilities.supports(code, self.name, Direction.TARGET):
                pending.append(code)
            else:
                result.failures[code] = f"{self.name} does not support target language {code}"
        if not pending:
            return result

        problem = self.missing_configuration()
        if problem:
            logger.warning(f"{self.name} is not configured, failing {len(pending)} language(s): {problem}")
            for code in pending:
                result.failures[code] = problem
            return result

        source_code = self._resolve_source(source)
        tasks = [asyncio.create_task(self._translate_target(text, source_code, code)) for code in pending]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        normalizer = self.languages.normalizer
        for code, outcome in zip(pending, outcomes):
            if isinstance(outcome, Exception):
                message = outcome.message if isinstance(outcome, ProviderError) else f"{type(outcome).__name__}: {outcome}"
                logger.debug(f"{self.name} failed for {code}: {message}")
                result.failures[code] = message
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            native_target, translated, detected = outcome
            canonical = normalizer.to_canonical(native_target, self.name) or code
            result.translations[canonical] = translated
            if result.detected_source is None and detected:
                result.detected_source = normalizer.to_canonical(detected, self.name)

        logger.debug(f"{self.name}: {len(result.translations)}/{len(pending)} languages translated")
        return result

    async def _translate_target(self, text: str, source_code: str | None, canonical: str) -> Tuple[str, str, str | None]:
        native = self.languages.normalizer.to_provider_code(canonical, self.name, Direction.TARGET)
        if native is None:
            raise UpstreamError(self.provider, f"no {self.name} code for {canonical}")
        translated, detected = await self._translate_one(text, source_code, native)
        if not isinstance(translated, str) or not translated.strip():
            raise UpstreamError(self.provider, f"empty translation returned for {native}")
        return native, translated, detected

    @abstractmethod
    async def _translate_one(self, text: str, source_code: str | None, target_code: str) -> Tuple[str, str | None]:
        """Translate into one provider-native target code.

        Returns the translated text and the provider-native detected source
        language when upstream reports one.
        """

    @abstractmethod
    async def detect(self, text: str) -> str | None:
        """Return the canonical code of the language of ``text``."""
