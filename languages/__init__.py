"""
Language data for the translation gateway.

- Registry of canonical 3-letter language codes
- Per-provider code normalization (regional variants included)
- Per-provider source/target capability sets
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from .capabilities import CapabilityIndex, CapabilitySet, build_capabilities
from .normalizer import CodeNormalizer, Direction, ProviderCodeTable, load_provider_tables
from .registry import LanguageEntry, LanguageRegistry, init_registry, load_registry


@dataclass(frozen=True, slots=True)
class LanguageSupport:
    registry: LanguageRegistry
    normalizer: CodeNormalizer
    capabilities: CapabilityIndex


@lru_cache(maxsize=None)
def load_language_support() -> LanguageSupport:
    """Build the registry, normalizer and capability sets from the packaged data."""
    registry = load_registry()
    tables = load_provider_tables()
    normalizer = CodeNormalizer(registry, tables)
    capabilities = build_capabilities(registry, normalizer, tables)
    return LanguageSupport(registry=registry, normalizer=normalizer, capabilities=capabilities)


__all__ = [
    "CapabilityIndex",
    "CapabilitySet",
    "CodeNormalizer",
    "Direction",
    "LanguageEntry",
    "LanguageRegistry",
    "LanguageSupport",
    "ProviderCodeTable",
    "build_capabilities",
    "init_registry",
    "load_language_support",
    "load_provider_tables",
    "load_registry",
]
