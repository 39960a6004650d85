"""
Connectivity probe for every translator and detector.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from loguru import logger

from .base import BaseTranslator, Provider

STATUS_TEXT = "Hello world"
STATUS_TARGET = "spa"
STATUS_SOURCE = "eng"


async def _probe_translation(translator: BaseTranslator, text: str, target: str, source: str) -> Dict[str, Any]:
    started = time.perf_counter()
    # DeepL is probed without a source so its auto-detection path is exercised too.
    probe_source = None if translator.provider is Provider.DEEPL else source
    result = await translator.translate(text, probe_source, [target])
    elapsed = round((time.perf_counter() - started) * 1000)
    if target in result.translations:
        return {"status": "success", "translation": result.translations[target], "response_time_ms": elapsed}
    return {
        "status": "error",
        "error": result.failures.get(target, "No translation returned"),
        "response_time_ms": elapsed,
    }


async def _probe_detection(translator: BaseTranslator, text: str) -> Dict[str, Any]:
    started = time.perf_counter()
    try:
        detected = await translator.detect(text)
    except Exception as exc:  # noqa: BLE001
        return {"status": "error", "error": str(exc), "response_time_ms": None}
    elapsed = round((time.perf_counter() - started) * 1000)
    return {"status": "success", "detected_language": detected, "response_time_ms": elapsed}


async def check_status(
    translators: Mapping[Provider, BaseTranslator],
    *,
    text: str = STATUS_TEXT,
    target: str = STATUS_TARGET,
    source: str = STATUS_SOURCE,
) -> Dict[str, Any]:
    logger.info("Testing translator connectivity...")
    providers = list(translators)
    translations, detections = await asyncio.gather(
        asyncio.gather(*(_probe_translation(translators[p], text, target, source) for p in providers)),
        asyncio.gather(*(_probe_detection(translators[p], text) for p in providers)),
    )

    report: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "test_text": text,
        "target_language": target,
        "translators": {p.value: outcome for p, outcome in zip(providers, translations)},
        "detectors": {p.value: outcome for p, outcome in zip(providers, detections)},
        "environment": {p.value: translators[p].is_configured for p in providers},
    }
    working_translators = [name for name, item in report["translators"].items() if item["status"] == "success"]
    working_detectors = [name for name, item in report["detectors"].items() if item["status"] == "success"]
    report["summary"] = {
        "working_translators": working_translators,
        "working_detectors": working_detectors,
        "total_translators_tested": len(providers),
        "total_detectors_tested": len(providers),
        "all_systems_operational": len(working_translators) == len(providers),
    }
    logger.info(f"Status check complete: {report['summary']}")
    return report
