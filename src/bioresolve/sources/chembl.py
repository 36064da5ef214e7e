"""
ChEMBL molecule search (drug candidates).

Uses the ChEMBL REST API full-text molecule search:
https://www.ebi.ac.uk/chembl/api/data/docs
"""

from __future__ import annotations

import httpx

from bioresolve.config import settings
from bioresolve.errors import SearchBackendError
from bioresolve.sources.base import SearchHit


def _describe(molecule: dict) -> str | None:
    parts = []
    if molecule.get("molecule_type"):
        parts.append(str(molecule["molecule_type"]))
    phase = molecule.get("max_phase")
    if phase not in (None, ""):
        parts.append(f"max phase {phase}")
    return ", ".join(parts) or None


class ChemblSearch:
    """Drug candidate lookup against ChEMBL."""

    def __init__(self, base_url: str | None = None, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self.base_url = (base_url or settings.chembl_url).rstrip("/")
        self._client = client
        self.timeout = timeout

    async def search_drug_candidates(self, text: str, limit: int = 8) -> list[SearchHit]:
        text = text.strip()
        if not text:
            return []
        url = f"{self.base_url}/molecule/search.json"
        params = {"q": text, "limit": limit}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise SearchBackendError(f"ChEMBL request failed: {exc}") from exc
        except ValueError as exc:
            raise SearchBackendError(f"ChEMBL returned invalid JSON: {exc}") from exc

        results = []
        for molecule in data.get("molecules") or []:
            chembl_id = molecule.get("molecule_chembl_id")
            if not chembl_id:
                continue
            results.append(
                SearchHit(
                    id=chembl_id,
                    name=molecule.get("pref_name") or chembl_id,
                    description=_describe(molecule),
                )
            )
        return results[:limit]
