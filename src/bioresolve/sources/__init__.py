"""
Search collaborators for candidate lookup.

The default backend routes disease/target/drug search to OpenTargets and
drug-candidate search to ChEMBL.
"""

from __future__ import annotations

import httpx

from bioresolve.sources.base import SearchBackend, SearchHit
from bioresolve.sources.chembl import ChemblSearch
from bioresolve.sources.opentargets import OpenTargetsSearch


class CompositeSearchBackend:
    """OpenTargets for diseases/targets/drugs, ChEMBL for drug candidates."""

    def __init__(
        self,
        opentargets: OpenTargetsSearch | None = None,
        chembl: ChemblSearch | None = None,
    ):
        self.opentargets = opentargets or OpenTargetsSearch()
        self.chembl = chembl or ChemblSearch()

    @classmethod
    def with_client(cls, client: httpx.AsyncClient) -> CompositeSearchBackend:
        return cls(OpenTargetsSearch(client=client), ChemblSearch(client=client))

    async def search_diseases(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self.opentargets.search_diseases(text, limit)

    async def search_targets(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self.opentargets.search_targets(text, limit)

    async def search_drugs(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self.opentargets.search_drugs(text, limit)

    async def search_drug_candidates(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self.chembl.search_drug_candidates(text, limit)


__all__ = [
    "SearchBackend",
    "SearchHit",
    "OpenTargetsSearch",
    "ChemblSearch",
    "CompositeSearchBackend",
]
