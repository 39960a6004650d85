"""
M2M100 translator served by Cloudflare Workers AI.
"""
from __future__ import annotations

from typing import Any, Dict, Tuple

from .base import BaseTranslator, DetectionUnsupported, Provider, UpstreamError


class M2MTranslator(BaseTranslator):
    provider = Provider.M2M
    display_name = "M2M100 (Workers AI)"

    API_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"

    def __init__(
        self,
        *,
        account_id: str | None,
        api_token: str | None,
        model: str = "@cf/meta/m2m100-1.2b",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.account_id = account_id
        self.api_token = api_token
        self.model = model

    def missing_configuration(self) -> str | None:
        if not self.account_id or not self.api_token:
            return "Workers AI not configured. Please set CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN."
        return None

    def _session_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    @property
    def api_url(self) -> str:
        return self.API_URL.format(account_id=self.account_id, model=self.model)

    async def _translate_one(self, text: str, source_code: str | None, target_code: str) -> Tuple[str, str | None]:
        payload: Dict[str, Any] = {"text": text, "target_lang": target_code}
        if source_code:
            payload["source_lang"] = source_code

        data = await self._post_json(self.api_url, payload)
        if not isinstance(data, dict) or not data.get("success", True):
            raise UpstreamError(self.provider, f"Workers AI reported failure: {data!r:.200}")
        result = data.get("result", data)
        translated = result.get("translated_text") if isinstance(result, dict) else None
        # Older model revisions answer with a {code: text} mapping.
        if isinstance(translated, dict):
            translated = translated.get(target_code)
        return translated or "", None

    async def detect(self, text: str) -> str | None:
        raise DetectionUnsupported(self.provider, "m2m100 does not report the source language")
