"""
OpenTargets Platform search over its public GraphQL API.

https://platform-docs.opentargets.org/data-access/graphql-api
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bioresolve.config import settings
from bioresolve.errors import SearchBackendError
from bioresolve.sources.base import SearchHit

logger = logging.getLogger(__name__)

SEARCH_QUERY = """
query Search($queryString: String!, $entityNames: [String!], $size: Int!) {
  search(queryString: $queryString, entityNames: $entityNames, page: {index: 0, size: $size}) {
    hits {
      id
      name
      description
      entity
    }
  }
}
"""


class OpenTargetsSearch:
    """
    Disease, target and drug search against OpenTargets.

    Pass an httpx.AsyncClient to share connections (and to mock in tests);
    otherwise a short-lived client is opened per call.
    """

    def __init__(self, url: str | None = None, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self.url = url or settings.opentargets_url
        self._client = client
        self.timeout = timeout

    async def search_diseases(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self._search(text, "disease", limit)

    async def search_targets(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self._search(text, "target", limit)

    async def search_drugs(self, text: str, limit: int = 8) -> list[SearchHit]:
        return await self._search(text, "drug", limit)

    async def search_drug_candidates(self, text: str, limit: int = 8) -> list[SearchHit]:
        # OpenTargets has no separate candidate index; ChEMBL covers this
        return []

    async def _search(self, text: str, entity: str, limit: int) -> list[SearchHit]:
        text = text.strip()
        if not text:
            return []
        payload = {
            "query": SEARCH_QUERY,
            "variables": {"queryString": text, "entityNames": [entity], "size": limit},
        }
        data = await self._post(payload)
        hits = ((data.get("data") or {}).get("search") or {}).get("hits") or []
        results = []
        for hit in hits:
            if hit.get("entity") not in (None, entity):
                continue
            if not hit.get("id") or not hit.get("name"):
                continue
            results.append(SearchHit(id=hit["id"], name=hit["name"], description=hit.get("description")))
        return results[:limit]

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise SearchBackendError(f"OpenTargets request failed: {exc}") from exc
        except ValueError as exc:
            raise SearchBackendError(f"OpenTargets returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SearchBackendError("OpenTargets returned an unexpected payload")
        if data.get("errors"):
            logger.debug("OpenTargets GraphQL errors: %s", data["errors"])
        return data
