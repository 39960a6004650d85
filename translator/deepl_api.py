"""
DeepL API Translator

Official DeepL API translator supporting both Free and Pro plans.
"""
from __future__ import annotations

from typing import Any, Dict, Tuple

from loguru import logger

from .base import BaseTranslator, Provider, UpstreamError


class DeepLAPITranslator(BaseTranslator):
    """DeepL API Translator with Free and Pro plan support.

    Features:
    - Automatic URL selection based on plan or key suffix
    - One request per target language so failures stay attributable
    - Language detection through a minimal translate call
    """

    provider = Provider.DEEPL
    display_name = "DeepL API"

    PRO_API_URL = "https://api.deepl.com/v2/translate"
    FREE_API_URL = "https://api-free.deepl.com/v2/translate"

    # Cheapest target to ask for when only the detected source is wanted.
    DETECTION_TARGET = "EN-US"

    def __init__(
        self,
        *,
        api_key: str | None,
        plan: str | None = None,
        api_url: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.plan = (plan or "").lower()

        if api_url:
            self.api_url = api_url
        elif self.plan == "pro" and not (api_key or "").endswith(":fx"):
            self.api_url = self.PRO_API_URL
        else:
            self.api_url = self.FREE_API_URL

    def missing_configuration(self) -> str | None:
        if not self.api_key:
            return "DeepL API key not configured. Please set DEEPL_API_KEY."
        return None

    def _session_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"DeepL-Auth-Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def _describe_error(self, status: int, body: str) -> str:
        if status == 403:
            return "DeepL API: Invalid API key or insufficient permissions"
        if status == 456:
            return "DeepL API: Quota exceeded"
        if status == 429:
            return "DeepL API: Too many requests. Please slow down."
        return f"DeepL API error: {super()._describe_error(status, body)}"

    async def _request(self, text: str, source_code: str | None, target_code: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": [text],
            "target_lang": target_code,
        }
        if source_code:
            payload["source_lang"] = source_code

        data = await self._post_json(self.api_url, payload)
        translations = data.get("translations") if isinstance(data, dict) else None
        if not translations or not isinstance(translations[0], dict):
            raise UpstreamError(self.provider, f"DeepL returned no translations for {target_code}")
        return translations[0]

    async def _translate_one(self, text: str, source_code: str | None, target_code: str) -> Tuple[str, str | None]:
        item = await self._request(text, source_code, target_code)
        return item.get("text", ""), item.get("detected_source_language")

    async def detect(self, text: str) -> str | None:
        self._require_configured()
        item = await self._request(text, None, self.DETECTION_TARGET)
        detected = item.get("detected_source_language")
        if not detected:
            raise UpstreamError(self.provider, "DeepL did not report a source language")
        canonical = self.languages.normalizer.to_canonical(detected, self.name)
        if canonical is None:
            logger.warning(f"DeepL detected {detected}, which has no canonical code")
        return canonical
