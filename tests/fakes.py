"""In-memory collaborators for resolver tests."""

import asyncio

from bioresolve.errors import ResolutionParseError
from bioresolve.llm.config import LLMConfig
from bioresolve.sources.base import SearchHit

RA = SearchHit("EFO_0000685", "rheumatoid arthritis", "A chronic autoimmune disease of the joints")
IL6 = SearchHit("ENSG00000136244", "IL6", "interleukin 6")
IL6R = SearchHit("ENSG00000160712", "IL6R", "interleukin 6 receptor")


class FakeBackend:
    """
    Search backend answering from canned rows.

    Each source is either a list of hits (returned for any text) or a
    callable text -> hits. delay and error apply to every call.
    """

    def __init__(self, diseases=None, targets=None, drugs=None, drug_candidates=None, delay=0.0, error=None):
        self.sources = {
            "diseases": diseases,
            "targets": targets,
            "drugs": drugs,
            "drug_candidates": drug_candidates,
        }
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def _answer(self, kind, text, limit):
        self.calls.append((kind, text))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        rows = self.sources[kind]
        if rows is None:
            return []
        if callable(rows):
            rows = rows(text)
        return list(rows)[:limit]

    async def search_diseases(self, text, limit=8):
        return await self._answer("diseases", text, limit)

    async def search_targets(self, text, limit=8):
        return await self._answer("targets", text, limit)

    async def search_drugs(self, text, limit=8):
        return await self._answer("drugs", text, limit)

    async def search_drug_candidates(self, text, limit=8):
        return await self._answer("drug_candidates", text, limit)


class StubLLM:
    """
    ResolverLLM returning canned responses keyed by response model.

    A canned exception is raised instead of returned.
    """

    def __init__(self, responses=None):
        self.config = LLMConfig(api_key="test-key")
        self.responses = responses or {}
        self.calls: list[type] = []

    async def create_structured(self, messages, response_model, *, model=None, max_tokens=None, timeout=None):
        self.calls.append(response_model)
        response = self.responses.get(response_model)
        if isinstance(response, BaseException):
            raise response
        if response is None:
            raise ResolutionParseError(f"no canned {response_model.__name__}")
        return response


class RateLimitError(Exception):
    """Provider error shaped like openai.RateLimitError."""

    status_code = 429

    def __init__(self, message="Rate limit reached", headers=None):
        super().__init__(message)
        self.headers = headers or {}


def text_router(**routes):
    """Hits for texts containing a keyword: text_router(arthritis=[RA])."""

    def answer(text):
        lowered = text.lower()
        hits = []
        for keyword, rows in routes.items():
            if keyword in lowered:
                hits.extend(rows)
        return hits

    return answer
