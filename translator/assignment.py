from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Mapping, Sequence

from languages import CapabilityIndex, Direction

from .base import Provider


@dataclass(slots=True)
class Assignment:
    """Partition of requested target languages across providers.

    ``buckets`` keeps the priority order it was built with; every target lands
    in exactly one bucket or in ``unsupported``.
    """

    buckets: Dict[Provider, List[str]] = field(default_factory=dict)
    unsupported: List[str] = field(default_factory=list)

    def non_empty(self) -> Dict[Provider, List[str]]:
        return {provider: codes for provider, codes in self.buckets.items() if codes}

    def provider_for(self, code: str) -> Provider | None:
        for provider, codes in self.buckets.items():
            if code in codes:
                return provider
        return None

    def to_dict(self) -> Dict[str, List[str]]:
        data = {provider.value: list(codes) for provider, codes in self.buckets.items()}
        data["unsupported"] = list(self.unsupported)
        return data


class AssignmentEngine:
    """Greedy first-match assignment of target languages to providers."""

    def __init__(self, capabilities: CapabilityIndex) -> None:
        self.capabilities = capabilities

    def assign(
        self,
        targets: Iterable[str],
        priority_order: Sequence[Provider],
        excluded: Mapping[str, AbstractSet[Provider]] | None = None,
    ) -> Assignment:
        """Give each target to the first provider in ``priority_order`` supporting it.

        ``excluded`` lists, per language, providers that must be skipped; the
        fallback pass uses it so a language never goes back to the provider
        that just failed it. Duplicate targets collapse to their first
        occurrence.
        """
        excluded = excluded or {}
        assignment = Assignment(buckets={provider: [] for provider in priority_order})
        for code in dict.fromkeys(targets):
            skip = excluded.get(code, frozenset())
            for provider in priority_order:
                if provider in skip:
                    continue
                if self.capabilities.supports(code, provider, Direction.TARGET):
                    assignment.buckets[provider].append(code)
                    break
            else:
                assignment.unsupported.append(code)
        return assignment
