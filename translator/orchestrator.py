from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from loguru import logger

from config import SETTINGS, RoutingPolicy
from languages import LanguageSupport

from .assignment import Assignment, AssignmentEngine
from .base import BaseTranslator, Provider, ProviderResult, parse_providers
from .detection import DetectionArbiter, DetectionOutcome

NO_TEXT_REASON = "Missing 'text' field in request body."
NO_TARGETS_REASON = "No target languages provided."
BAD_TARGETS_REASON = "Target languages must be a comma-separated string or a collection of codes."

LanguageInput = str | Iterable[str] | None


class RequestRejected(ValueError):
    """Terminal input rejection; nothing was dispatched."""

    status = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.reason}


class RequestState(str, Enum):
    VALIDATING = "validating"
    DETECTING = "detecting"
    ASSIGNING = "assigning"
    DISPATCHING = "dispatching"
    FALLBACK_DISPATCHING = "fallback_dispatching"
    MERGING = "merging"
    RESPONDING = "responding"
    REJECTED = "rejected"


@dataclass(slots=True)
class TranslationResponse:
    translations: Dict[str, str]
    metadata: Dict[str, Any]
    errors: Dict[str, Any] = field(default_factory=dict)
    status: int = 200

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.translations)
        data["metadata"] = self.metadata
        if self.errors:
            data["errors"] = self.errors
        return data


@dataclass(slots=True)
class PendingRequest:
    text: str
    targets: List[str]
    source: str | None
    priority: List[Provider]
    detection_candidates: List[Provider]
    detection_preference: List[Provider]
    unknown_targets: List[str] = field(default_factory=list)
    unsupported_source: str | None = None
    ignored_providers: List[str] = field(default_factory=list)
    state: RequestState = RequestState.VALIDATING

    def advance(self, state: RequestState) -> None:
        logger.debug(f"Request {self.state.value} -> {state.value}")
        self.state = state


@dataclass(slots=True)
class MergedResults:
    """First-successful-wins accumulation of provider results."""

    translations: Dict[str, str] = field(default_factory=dict)
    attribution: Dict[str, Provider] = field(default_factory=dict)
    failure_details: Dict[str, str] = field(default_factory=dict)
    failed_by: Dict[str, Set[Provider]] = field(default_factory=dict)
    detected_source: str | None = None
    detected_by: Provider | None = None

    def absorb(self, results: Iterable[ProviderResult]) -> None:
        for result in results:
            for code, text in result.translations.items():
                if code in self.translations:
                    continue
                self.translations[code] = text
                self.attribution[code] = result.provider
                self.failure_details.pop(code, None)
            for code, message in result.failures.items():
                self.failed_by.setdefault(code, set()).add(result.provider)
                if code not in self.translations:
                    self.failure_details[code] = f"{result.provider.value}: {message}"
            if self.detected_source is None and result.detected_source:
                self.detected_source = result.detected_source
                self.detected_by = result.provider

    def still_failed(self, codes: Iterable[str]) -> List[str]:
        return [code for code in codes if code in self.failed_by and code not in self.translations]


def _parse_codes(value: LanguageInput) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (set, frozenset)):
        items = sorted(value, key=str)
    elif isinstance(value, Iterable) and not isinstance(value, (bytes, Mapping)):
        items = value
    else:
        raise RequestRejected(BAD_TARGETS_REASON)
    codes = (str(item).strip().lower() for item in items if item is not None)
    return list(dict.fromkeys(code for code in codes if code))


class TranslationOrchestrator:
    """Route one request across the providers and merge the answers.

    Lifecycle: validate, detect the source when none is given, assign targets
    by priority, dispatch every bucket concurrently, re-dispatch failures once
    over the fallback order, merge and respond. Only empty text or an empty
    target list reject the request; everything else ends in a 200 response
    with an ``errors`` record.
    """

    def __init__(
        self,
        translators: Mapping[Provider, BaseTranslator],
        languages: LanguageSupport,
        routing: RoutingPolicy | None = None,
    ) -> None:
        routing = routing or SETTINGS.routing
        self.translators: Dict[Provider, BaseTranslator] = dict(translators)
        self.languages = languages
        self.engine = AssignmentEngine(languages.capabilities)
        self.arbiter = DetectionArbiter(self.translators)
        self.primary_order = self._resolve_order(routing.primary_order, "primary_order")
        self.fallback_order = self._resolve_order(routing.fallback_order, "fallback_order")
        detection_order = self._resolve_order(routing.detection_order, "detection_order")
        # Every known provider takes part in detection; configured order first.
        self.detection_order = detection_order + [p for p in Provider if p not in detection_order]

    @staticmethod
    def _resolve_order(names: Sequence[str], label: str) -> List[Provider]:
        providers, ignored = parse_providers(names)
        if ignored:
            logger.warning(f"Ignoring unknown providers in {label}: {ignored}")
        if not providers:
            raise ValueError(f"{label} must name at least one provider")
        return providers

    async def close(self) -> None:
        await asyncio.gather(*(translator.close() for translator in self.translators.values()))

    async def __aenter__(self) -> "TranslationOrchestrator":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _validate(
        self,
        text: Any,
        targets: LanguageInput,
        source_lang: str | None,
        priority_override: LanguageInput,
        detection_preference: LanguageInput,
    ) -> PendingRequest:
        if not isinstance(text, str) or not text.strip():
            raise RequestRejected(NO_TEXT_REASON)
        codes = _parse_codes(targets)
        if not codes:
            raise RequestRejected(NO_TARGETS_REASON)

        registry = self.languages.registry
        priority, ignored_priority = parse_providers(priority_override)
        preference, ignored_detection = parse_providers(detection_preference)
        request = PendingRequest(
            text=text,
            targets=codes,
            source=None,
            priority=priority or list(self.primary_order),
            detection_candidates=preference or list(self.detection_order),
            detection_preference=preference,
            unknown_targets=[code for code in codes if code not in registry],
            ignored_providers=list(dict.fromkeys(ignored_priority + ignored_detection)),
        )
        if request.ignored_providers:
            logger.warning(f"Ignoring unknown provider names: {request.ignored_providers}")

        source = (source_lang or "").strip().lower()
        if source and source in registry:
            request.source = source
        elif source:
            logger.warning(f"Unknown source language {source}, falling back to detection")
            request.unsupported_source = source
        return request

    async def handle(
        self,
        text: str,
        targets: LanguageInput,
        source_lang: str | None = None,
        priority_override: LanguageInput = None,
        detection_preference: LanguageInput = None,
    ) -> TranslationResponse:
        try:
            request = self._validate(text, targets, source_lang, priority_override, detection_preference)
        except RequestRejected as exc:
            logger.info(f"Request {RequestState.REJECTED.value}: {exc.reason}")
            raise

        detection: DetectionOutcome | None = None
        source = request.source
        if source is None:
            request.advance(RequestState.DETECTING)
            detection = await self.arbiter.detect(request.text, request.detection_candidates)
            source = detection.primary

        request.advance(RequestState.ASSIGNING)
        known = [code for code in request.targets if code not in request.unknown_targets]
        assignment = self.engine.assign(known, request.priority)
        logger.info(f"Assignment: {assignment.to_dict()}")

        request.advance(RequestState.DISPATCHING)
        merged = MergedResults()
        merged.absorb(await self._dispatch(request.text, source, assignment))

        fallback_langs: List[str] = []
        retry = merged.still_failed(known)
        if retry:
            request.advance(RequestState.FALLBACK_DISPATCHING)
            fallback = self.engine.assign(retry, self.fallback_order, excluded=merged.failed_by)
            fallback_langs = [code for codes in fallback.non_empty().values() for code in codes]
            logger.info(f"Fallback assignment for {retry}: {fallback.to_dict()}")
            merged.absorb(await self._dispatch(request.text, source, fallback))

        request.advance(RequestState.MERGING)
        response = self._merge(request, assignment, merged, detection, source, fallback_langs)
        request.advance(RequestState.RESPONDING)
        return response

    async def respond(self, payload: Mapping[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """Handle a request body using the gateway's field names.

        Returns the status code and JSON-ready body, including the 400 body
        for rejected input.
        """
        try:
            response = await self.handle(
                payload.get("text"),
                payload.get("tgt_langs", payload.get("target_langs")),
                source_lang=payload.get("src_lang"),
                priority_override=payload.get("priority"),
                detection_preference=payload.get("detection_preference"),
            )
        except RequestRejected as exc:
            return exc.status, exc.to_dict()
        return response.status, response.to_dict()

    async def _dispatch(self, text: str, source: str | None, assignment: Assignment) -> List[ProviderResult]:
        buckets = assignment.non_empty()
        if not buckets:
            return []
        tasks = [
            asyncio.create_task(self._run_bucket(provider, text, source, codes))
            for provider, codes in buckets.items()
        ]
        return list(await asyncio.gather(*tasks))

    async def _run_bucket(self, provider: Provider, text: str, source: str | None, codes: List[str]) -> ProviderResult:
        translator = self.translators.get(provider)
        if translator is None:
            message = f"{provider.value} translator is not available"
            return ProviderResult(provider=provider, failures={code: message for code in codes})
        try:
            return await translator.translate(text, source, codes)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"{provider.value} failed for {codes}: {exc}")
            message = f"{type(exc).__name__}: {exc}"
            return ProviderResult(provider=provider, failures={code: message for code in codes})

    def _merge(
        self,
        request: PendingRequest,
        assignment: Assignment,
        merged: MergedResults,
        detection: DetectionOutcome | None,
        source: str | None,
        fallback_langs: List[str],
    ) -> TranslationResponse:
        translations = {code: merged.translations[code] for code in request.targets if code in merged.translations}
        unsupported_set = set(request.unknown_targets) | set(assignment.unsupported)
        unsupported = [code for code in request.targets if code in unsupported_set]
        failed = [code for code in request.targets if code not in translations and code not in unsupported_set]

        if request.source:
            language_definition = "user"
        elif detection is not None and detection.primary_provider is not None:
            language_definition = f"{detection.primary_provider.value}-detected"
        elif merged.detected_by is not None:
            source = merged.detected_source
            language_definition = f"{merged.detected_by.value}-auto-detect"
        else:
            language_definition = "auto-detect"

        providers = {code: merged.attribution[code].value for code in translations}
        translators: Dict[str, List[str]] = {}
        for code, name in providers.items():
            translators.setdefault(name, []).append(code)

        detected_source = detection.primary if detection is not None else None
        if detected_source is None and not request.source:
            detected_source = merged.detected_source

        metadata: Dict[str, Any] = {
            "src_lang": source,
            "language_definition": language_definition,
            "detection_preference": [p.value for p in request.detection_preference] or "auto",
            "detection_used_translator": (
                detection.primary_provider.value if detection is not None and detection.primary_provider else None
            ),
            "detected_source_language": detected_source,
            "detection_results": (
                {p.value: code for p, code in detection.per_provider.items()} if detection is not None else {}
            ),
            "detection_errors": (
                {p.value: message for p, message in detection.errors.items()} if detection is not None else {}
            ),
            "priority_order": [p.value for p in request.priority],
            "translators": translators,
            "providers": providers,
            "fallback_langs": fallback_langs,
        }
        if request.ignored_providers:
            metadata["ignored_providers"] = request.ignored_providers

        errors: Dict[str, Any] = {}
        if unsupported:
            errors["unsupported_target_langs"] = unsupported
        if failed:
            errors["failed_target_langs"] = failed
            errors["failure_details"] = {
                code: merged.failure_details.get(code, "no provider returned a translation") for code in failed
            }
        if request.unsupported_source:
            errors["unsupported_source_lang"] = request.unsupported_source

        logger.info(
            f"Translated {len(translations)}/{len(request.targets)} languages"
            f" ({len(unsupported)} unsupported, {len(failed)} failed)"
        )
        return TranslationResponse(translations=translations, metadata=metadata, errors=errors)
