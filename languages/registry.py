from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping

DATA_DIR = Path(__file__).resolve().parent / "data"
LANGUAGES_FILE = DATA_DIR / "languages.json"


@dataclass(frozen=True, slots=True)
class LanguageEntry:
    code: str
    iso1: str | None
    name: str


class LanguageRegistry:
    """Read-only lookup over the known natural languages.

    Keyed by the canonical 3-letter code. The 2-letter code is optional and
    not guaranteed unique, so the reverse index keeps the first entry that
    claimed it.
    """

    def __init__(self, entries: Iterable[LanguageEntry]) -> None:
        by_code: Dict[str, LanguageEntry] = {}
        by_iso1: Dict[str, LanguageEntry] = {}
        for entry in entries:
            if entry.code in by_code:
                raise ValueError(f"Duplicate language code in registry: {entry.code}")
            by_code[entry.code] = entry
            if entry.iso1:
                by_iso1.setdefault(entry.iso1.lower(), entry)
        self._by_code: Mapping[str, LanguageEntry] = by_code
        self._by_iso1: Mapping[str, LanguageEntry] = by_iso1

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._by_code

    def __iter__(self) -> Iterator[LanguageEntry]:
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)

    @property
    def codes(self) -> List[str]:
        return list(self._by_code)

    def get(self, code: str) -> LanguageEntry | None:
        return self._by_code.get(code)

    def name_of(self, code: str) -> str | None:
        entry = self._by_code.get(code)
        return entry.name if entry else None

    def iso1_for(self, code: str) -> str | None:
        entry = self._by_code.get(code)
        return entry.iso1 if entry else None

    def from_iso1(self, iso1: str) -> str | None:
        entry = self._by_iso1.get(iso1.lower())
        return entry.code if entry else None


def init_registry(raw_entries: Iterable[Mapping[str, object]]) -> LanguageRegistry:
    """Build a registry from raw records with ``code``, ``iso1`` and ``name`` keys."""
    entries = []
    for raw in raw_entries:
        code = str(raw["code"]).strip().lower()
        if len(code) != 3:
            raise ValueError(f"Canonical language code must have 3 letters: {code!r}")
        iso1 = raw.get("iso1")
        entries.append(
            LanguageEntry(
                code=code,
                iso1=str(iso1).strip().lower() if iso1 else None,
                name=str(raw.get("name") or code),
            )
        )
    return LanguageRegistry(entries)


def load_registry(path: Path = LANGUAGES_FILE) -> LanguageRegistry:
    with path.open("r", encoding="utf-8") as handle:
        return init_registry(json.load(handle))
