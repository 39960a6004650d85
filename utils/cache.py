from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence
import json
import threading

from loguru import logger


def make_cache_key(
    text: str,
    source: str | None,
    targets: Iterable[str],
    priority: Sequence[str] | None = None,
) -> str:
    source_key = (source or "").strip().lower() or "auto"
    route = ",".join(item.strip().lower() for item in priority or () if item.strip()) or "default"
    return f"{source_key}::{','.join(sorted(set(targets)))}::{route}::{text}"


class ResponseStore:
    """JSON-file store of merged translation responses.

    Each entry is ``{"stored_at": <ISO timestamp>, "response": <wire body>}``.
    When ``max_age`` is set, older entries read as misses. Callers consult the
    store around orchestration; the orchestrator itself never touches it.
    """

    def __init__(self, path: Path, *, max_age: timedelta | None = None, auto_flush: bool = True) -> None:
        self.path = path
        self.max_age = max_age
        self.auto_flush = auto_flush
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = self._read()
        self._pending = False

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.is_file():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable response store {self.path}: {exc}")
            return {}
        if not isinstance(raw, dict):
            return {}
        return {key: entry for key, entry in raw.items() if isinstance(entry, dict) and "response" in entry}

    def _expired(self, entry: Dict[str, Any]) -> bool:
        if self.max_age is None:
            return False
        try:
            stored_at = datetime.fromisoformat(entry["stored_at"])
        except (KeyError, TypeError, ValueError):
            return True
        if stored_at.tzinfo is None:
            stored_at = stored_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - stored_at > self.max_age

    def lookup(
        self,
        text: str,
        targets: Iterable[str],
        source: str | None = None,
        *,
        priority: Sequence[str] | None = None,
    ) -> Dict[str, Any] | None:
        with self._lock:
            entry = self._entries.get(make_cache_key(text, source, targets, priority))
        if entry is None or self._expired(entry):
            return None
        return entry["response"]

    def store(
        self,
        text: str,
        targets: Iterable[str],
        response: Dict[str, Any],
        source: str | None = None,
        *,
        priority: Sequence[str] | None = None,
    ) -> None:
        entry = {"stored_at": datetime.now(timezone.utc).isoformat(), "response": response}
        with self._lock:
            self._entries[make_cache_key(text, source, targets, priority)] = entry
            self._pending = True
        if self.auto_flush:
            self.flush()

    def flush(self) -> None:
        with self._lock:
            if not self._pending:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Readers only ever see a complete file.
            staging = self.path.with_name(self.path.name + ".tmp")
            staging.write_text(json.dumps(self._entries, ensure_ascii=False, indent=2), encoding="utf-8")
            staging.replace(self.path)
            self._pending = False

    def __len__(self) -> int:
        return len(self._entries)
