from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Tuple

from .registry import DATA_DIR, LANGUAGES_FILE, LanguageEntry, LanguageRegistry

CODE_STYLES = ("iso1", "iso1_upper", "canonical")


class Direction(str, Enum):
    SOURCE = "source"
    TARGET = "target"


@dataclass(frozen=True, slots=True)
class ProviderCodeTable:
    """Static description of one provider's native language code space."""

    provider: str
    code_style: str
    sources: frozenset[str] = frozenset()
    targets: frozenset[str] = frozenset()
    preferred: Mapping[str, str] = field(default_factory=dict)
    variants: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    supports_all: bool = False

    def declared(self, direction: Direction) -> frozenset[str]:
        """Casefolded native codes the provider publishes for ``direction``."""
        return self.sources if direction is Direction.SOURCE else self.targets

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "ProviderCodeTable":
        style = str(raw.get("code_style", "iso1"))
        if style not in CODE_STYLES:
            raise ValueError(f"Unknown code_style {style!r} for provider {raw.get('provider')!r}")
        return cls(
            provider=str(raw["provider"]),
            code_style=style,
            sources=frozenset(str(code).casefold() for code in raw.get("sources", [])),
            targets=frozenset(str(code).casefold() for code in raw.get("targets", [])),
            preferred={str(k): str(v) for k, v in dict(raw.get("preferred", {})).items()},
            variants={str(k): tuple(str(c) for c in v) for k, v in dict(raw.get("variants", {})).items()},
            supports_all=bool(raw.get("all", False)),
        )


def load_provider_tables(data_dir: Path = DATA_DIR) -> Dict[str, ProviderCodeTable]:
    tables: Dict[str, ProviderCodeTable] = {}
    for path in sorted(data_dir.glob("*.json")):
        if path == LANGUAGES_FILE:
            continue
        with path.open("r", encoding="utf-8") as handle:
            table = ProviderCodeTable.from_dict(json.load(handle))
        tables[table.provider] = table
    return tables


class CodeNormalizer:
    """Bidirectional mapping between canonical codes and provider-native codes.

    Outbound lookups honour the provider's ``preferred`` map (for example
    ``eng`` -> ``EN-US`` on DeepL). Inbound lookups are case-insensitive and
    accept every regional variant listed for a language, so ``EN-GB``,
    ``EN-US`` and ``EN`` all resolve to ``eng``.
    """

    def __init__(self, registry: LanguageRegistry, tables: Mapping[str, ProviderCodeTable]) -> None:
        self._registry = registry
        self._tables = dict(tables)
        self._reverse: Dict[str, Dict[str, str]] = {
            provider: self._build_reverse(table) for provider, table in self._tables.items()
        }

    def _build_reverse(self, table: ProviderCodeTable) -> Dict[str, str]:
        reverse: Dict[str, str] = {}
        # Explicit preferences and regional variants win over derived codes.
        for canonical, code in table.preferred.items():
            if canonical in self._registry:
                reverse.setdefault(code.casefold(), canonical)
        for canonical, codes in table.variants.items():
            if canonical not in self._registry:
                continue
            for code in codes:
                reverse.setdefault(code.casefold(), canonical)
        for entry in self._registry:
            base = self._base_code(entry, table)
            if base:
                reverse.setdefault(base.casefold(), entry.code)
        return reverse

    @staticmethod
    def _base_code(entry: LanguageEntry, table: ProviderCodeTable) -> str | None:
        if table.code_style == "canonical":
            return entry.code
        if not entry.iso1:
            return None
        if table.code_style == "iso1_upper":
            return entry.iso1.upper()
        return entry.iso1

    def to_provider_code(
        self,
        canonical: str,
        provider: str,
        direction: Direction = Direction.TARGET,
    ) -> str | None:
        table = self._tables.get(provider)
        entry = self._registry.get(canonical) if canonical else None
        if table is None or entry is None:
            return None
        base = self._base_code(entry, table)
        preferred = table.preferred.get(canonical)
        # Providers tend to accept bare codes as sources and regional ones as targets.
        ordered = (preferred, base) if direction is Direction.TARGET else (base, preferred)
        candidates = [code for code in ordered if code]
        if not candidates:
            return None
        declared = table.declared(direction)
        for code in candidates:
            if code.casefold() in declared:
                return code
        return candidates[0]

    def to_canonical(self, provider_code: str | None, provider: str) -> str | None:
        if not provider_code:
            return None
        reverse = self._reverse.get(provider)
        if reverse is None:
            return None
        return reverse.get(provider_code.strip().casefold())
