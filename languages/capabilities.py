from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

from loguru import logger

from .normalizer import CodeNormalizer, Direction, ProviderCodeTable
from .registry import LanguageRegistry


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    provider: str
    sources: frozenset[str]
    targets: frozenset[str]

    def supports(self, canonical: str, direction: Direction = Direction.TARGET) -> bool:
        pool = self.sources if direction is Direction.SOURCE else self.targets
        return canonical in pool


class CapabilityIndex:
    """Immutable per-provider source/target support, built once at startup."""

    def __init__(self, sets: Iterable[CapabilitySet]) -> None:
        self._sets: Dict[str, CapabilitySet] = {item.provider: item for item in sets}

    @property
    def providers(self) -> list[str]:
        return list(self._sets)

    def get(self, provider: str) -> CapabilitySet | None:
        return self._sets.get(provider)

    def supports(self, canonical: str, provider: str, direction: Direction = Direction.TARGET) -> bool:
        capability = self._sets.get(provider)
        return capability is not None and capability.supports(canonical, direction)


def _derive(
    registry: LanguageRegistry,
    normalizer: CodeNormalizer,
    table: ProviderCodeTable,
    direction: Direction,
) -> frozenset[str]:
    supported = set()
    for entry in registry:
        native = normalizer.to_provider_code(entry.code, table.provider, direction)
        if native is None:
            continue
        if not table.supports_all and native.casefold() not in table.declared(direction):
            continue
        # Only keep languages whose native code maps back to the same entry.
        if normalizer.to_canonical(native, table.provider) != entry.code:
            continue
        supported.add(entry.code)
    return frozenset(supported)


def build_capabilities(
    registry: LanguageRegistry,
    normalizer: CodeNormalizer,
    tables: Mapping[str, ProviderCodeTable],
) -> CapabilityIndex:
    sets = []
    for provider, table in tables.items():
        capability = CapabilitySet(
            provider=provider,
            sources=_derive(registry, normalizer, table, Direction.SOURCE),
            targets=_derive(registry, normalizer, table, Direction.TARGET),
        )
        logger.debug(
            f"Capabilities for {provider}: {len(capability.sources)} sources, {len(capability.targets)} targets"
        )
        sets.append(capability)
    return CapabilityIndex(sets)
