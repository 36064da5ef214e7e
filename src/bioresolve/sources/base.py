"""
Search collaborator contract.

A backend answers free-text lookups for diseases, targets and drugs. Methods may
raise (SearchBackendError or anything else); the candidate aggregator times
them out and treats failures as empty results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class SearchHit:
    """One row returned by a search collaborator."""
    id: str
    name: str
    description: str | None = None


@runtime_checkable
class SearchBackend(Protocol):
    async def search_diseases(self, text: str, limit: int = 8) -> list[SearchHit]: ...

    async def search_targets(self, text: str, limit: int = 8) -> list[SearchHit]: ...

    async def search_drugs(self, text: str, limit: int = 8) -> list[SearchHit]: ...

    async def search_drug_candidates(self, text: str, limit: int = 8) -> list[SearchHit]: ...
