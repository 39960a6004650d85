"""
Google Cloud Translation (v3) translator.

Uses the project-scoped ``translateText`` and ``detectLanguage`` endpoints
with a bearer access token.
"""
from __future__ import annotations

from typing import Any, Dict, Tuple

from loguru import logger

from .base import BaseTranslator, Provider, UpstreamError


class GoogleTranslator(BaseTranslator):
    """Google Cloud Translation v3 adapter.

    Features:
    - One ``translateText`` request per target language
    - Google auto-detection when no source language is sent
    - Dedicated ``detectLanguage`` endpoint for source detection
    """

    provider = Provider.GOOGLE
    display_name = "Google Cloud Translation"

    def __init__(
        self,
        *,
        project_id: str | None,
        access_token: str | None,
        api_url: str = "https://translation.googleapis.com/v3",
        location: str = "global",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.project_id = project_id
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.location = location

    def missing_configuration(self) -> str | None:
        if not self.project_id:
            return "Google Translate API not configured. Please set GOOGLE_CLOUD_PROJECT_ID."
        if not self.access_token:
            return "Google Translate API credentials not configured. Please set GOOGLE_TRANSLATE_ACCESS_TOKEN."
        return None

    def _session_headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if self.project_id:
            headers["x-goog-user-project"] = self.project_id
        return headers

    @property
    def _parent(self) -> str:
        return f"{self.api_url}/projects/{self.project_id}/locations/{self.location}"

    def _describe_error(self, status: int, body: str) -> str:
        return f"Google Translate API error: {super()._describe_error(status, body)}"

    async def _translate_one(self, text: str, source_code: str | None, target_code: str) -> Tuple[str, str | None]:
        payload: Dict[str, Any] = {
            "contents": [text],
            "targetLanguageCode": target_code,
            "mimeType": "text/plain",
        }
        if source_code:
            payload["sourceLanguageCode"] = source_code

        data = await self._post_json(f"{self._parent}:translateText", payload)
        translations = data.get("translations") if isinstance(data, dict) else None
        if not translations or not isinstance(translations[0], dict):
            raise UpstreamError(self.provider, f"Google returned no translations for {target_code}")
        item = translations[0]
        return item.get("translatedText", ""), item.get("detectedLanguageCode")

    async def detect(self, text: str) -> str | None:
        self._require_configured()
        data = await self._post_json(f"{self._parent}:detectLanguage", {"content": text, "mimeType": "text/plain"})
        languages = data.get("languages") if isinstance(data, dict) else None
        if not languages:
            raise UpstreamError(self.provider, "No language detected by Google Translate")
        best = languages[0]
        code = best.get("languageCode")
        canonical = self.languages.normalizer.to_canonical(code, self.name)
        logger.debug(f"Google detected {code} -> {canonical} (confidence {best.get('confidence')})")
        return canonical
