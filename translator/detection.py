from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

from loguru import logger

from .base import BaseTranslator, Provider, ProviderError


@dataclass(slots=True)
class DetectionOutcome:
    primary: str | None = None
    primary_provider: Provider | None = None
    per_provider: Dict[Provider, str | None] = field(default_factory=dict)
    errors: Dict[Provider, str] = field(default_factory=dict)


class DetectionArbiter:
    """Query several providers for the source language and pick one answer.

    Every candidate runs concurrently and all of them are awaited. The primary
    answer is the first success in candidate order, not the first to arrive,
    so the same inputs always select the same provider.
    """

    def __init__(self, translators: Mapping[Provider, BaseTranslator]) -> None:
        self.translators = dict(translators)

    async def detect(self, text: str, candidates: Sequence[Provider] | None = None) -> DetectionOutcome:
        order = [p for p in (candidates or self.translators) if p in self.translators]
        outcome = DetectionOutcome()
        if not order:
            return outcome

        tasks = [asyncio.create_task(self.translators[provider].detect(text)) for provider in order]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for provider, result in zip(order, results):
            if isinstance(result, ProviderError):
                outcome.per_provider[provider] = None
                outcome.errors[provider] = result.message
            elif isinstance(result, Exception):
                outcome.per_provider[provider] = None
                outcome.errors[provider] = f"{type(result).__name__}: {result}"
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome.per_provider[provider] = result
                if result is None:
                    outcome.errors[provider] = "no recognised language detected"
                elif outcome.primary is None:
                    outcome.primary = result
                    outcome.primary_provider = provider

        for provider, message in outcome.errors.items():
            logger.debug(f"{provider.value} detection failed: {message}")
        used = outcome.primary_provider.value if outcome.primary_provider else None
        logger.info(f"Detected source {outcome.primary} via {used}")
        return outcome
