"""
LLM translator backed by the OpenAI chat completions API.

The model is asked for a JSON object so the answer can be parsed without
guessing where the translation starts and ends.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Tuple

from loguru import logger

from .base import BaseTranslator, Provider, UpstreamError

SYSTEM_PROMPT = "Multi Translate: You are a professional translator."

TRANSLATE_PROMPT = """You are a professional translator. Translate the given text into {target_name} ({target_code}).{source_context}

IMPORTANT:
- Translate for natural, native-like expression in the target language
- For very short text like single words, provide the most natural and commonly used translation
- If the text is a phrase, proverb, slang, or colloquialism, translate for natural expression
- Be aware of times and numbers, and spell them out as they would appear in the local language with words, not digits

The JSON response MUST use this exact format:
{{"translation": "...", "detected_source_language": "<ISO 639-3 code>"}}

Text to translate: "{text}"

Respond ONLY with the JSON object:"""

DETECT_PROMPT = """You are a language detector. Identify the language of the given text.

The JSON response MUST use this exact format, with an ISO 639-3 code:
{{"detected_source_language": "eng"}}

Text: "{text}"

Respond ONLY with the JSON object:"""


class OpenAITranslator(BaseTranslator):
    provider = Provider.OPENAI
    display_name = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gpt-4o",
        api_url: str = "https://api.openai.com/v1/chat/completions",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.model = model
        self.api_url = api_url

    def missing_configuration(self) -> str | None:
        if not self.api_key:
            return "Missing OpenAI API key. Please set OPENAI_API_KEY."
        return None

    def _session_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _describe_error(self, status: int, body: str) -> str:
        return f"OpenAI API error: {super()._describe_error(status, body)}"

    async def _complete_json(self, prompt: str) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
        }
        data = await self._post_json(self.api_url, payload)
        try:
            content = data["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise UpstreamError(self.provider, f"malformed completion: {exc}") from exc
        if not isinstance(parsed, dict):
            raise UpstreamError(self.provider, "completion is not a JSON object")
        return parsed

    def _to_canonical(self, code: Any) -> str | None:
        if not isinstance(code, str) or not code.strip():
            return None
        code = code.strip().lower()
        registry = self.languages.registry
        if code in registry:
            return code
        # Models sometimes answer with 2-letter codes despite the prompt.
        return registry.from_iso1(code)

    async def _translate_one(self, text: str, source_code: str | None, target_code: str) -> Tuple[str, str | None]:
        registry = self.languages.registry
        source_context = ""
        if source_code:
            source_context = f"\n\nSOURCE LANGUAGE: The text is in {registry.name_of(source_code)} ({source_code})."
        prompt = TRANSLATE_PROMPT.format(
            target_name=registry.name_of(target_code) or target_code,
            target_code=target_code,
            source_context=source_context,
            text=text,
        )
        parsed = await self._complete_json(prompt)
        translation = parsed.get("translation") or parsed.get(target_code)
        return translation or "", self._to_canonical(parsed.get("detected_source_language"))

    async def detect(self, text: str) -> str | None:
        self._require_configured()
        parsed = await self._complete_json(DETECT_PROMPT.format(text=text))
        raw = parsed.get("detected_source_language") or parsed.get("src_lang")
        canonical = self._to_canonical(raw)
        if canonical is None:
            logger.warning(f"OpenAI detected {raw!r}, which has no canonical code")
        return canonical
