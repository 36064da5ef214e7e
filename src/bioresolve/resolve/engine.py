"""
Query-to-entity resolution entry point.

    query ─┬─> semantic planner (optional, 14 s) ──────────────┐
           └─> relation mentions (optional LLM, 1.8 s)         │
                       │                                        │
                       v                                        │
       mentions ─> candidate search (stage 1, maybe stage 2)    │
                       │                                        │
                       v                                        v
             disambiguation (LLM or lexical) ──> merge with semantic plan
                       │
                       v
      target re-canonicalization ─> disease anchor check ─> dedup ─> collisions
                       │
                       v
                 bundle cache

Usage:
    from bioresolve.resolve.engine import EntityResolver
    from bioresolve.sources import CompositeSearchBackend

    resolver = EntityResolver(CompositeSearchBackend())
    bundle = await resolver.resolve_query_entities_bundle("how does IL-6 drive rheumatoid arthritis")
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable

from bioresolve.config import Settings
from bioresolve.config import settings as default_settings
from bioresolve.llm.client import ResolverLLM, create_client
from bioresolve.llm.rate_limit import CircuitBreaker
from bioresolve.llm.relation_mentions import extract_relation_mentions_fast
from bioresolve.logger import logger
from bioresolve.resolve.cache import TTLCache
from bioresolve.resolve.candidates import search_mention_candidates
from bioresolve.resolve.concurrency import gather_settled, with_deadline
from bioresolve.resolve.disambiguation import run_model_resolution
from bioresolve.resolve.mentions import (
    MAX_MENTIONS,
    extract_mentions,
    mentions_from_query_plan,
    normalize_relation_mention,
    prune_subsumed_single_token_mentions,
)
from bioresolve.resolve.plan import (
    dedupe_anchors_semantically,
    disambiguate_mention_target_disease_collisions,
    filter_resolved_unresolved_mentions,
    keep_disease_anchor,
    merge_query_plans,
    target_symbol_hint_from_mention,
)
from bioresolve.resolve.schemas import (
    MAX_PLAN_UNRESOLVED,
    MentionCandidate,
    QueryEntityBundle,
    QueryPlanAnchor,
    ResolvedQueryPlan,
)
from bioresolve.resolve.text import alnum_compact, is_generic_mechanism_mention, normalize, sanitize_mention
from bioresolve.sources import CompositeSearchBackend
from bioresolve.sources.base import SearchBackend

Planner = Callable[[str], Awaitable[ResolvedQueryPlan | None]]

_CRITICAL_SINGLE_TOKEN = re.compile(r"^[a-z0-9+\-]{2,8}$", re.IGNORECASE)

PRIORITY_HEAD = 4
MAX_PRIORITIZED = 6
STAGE_TWO_POOL = 8
MAX_STAGE_TWO = 4
STAGE_TWO_MIN_DISEASE_ROWS = 2
STAGE_TWO_MIN_ROWS = 8
RELATION_MENTION_LIMIT = 6
CANONICAL_TARGET_CONFIDENCE = 0.92


class EntityResolver:
    """
    Resolves free-text biomedical questions into QueryEntityBundles.

    Collaborators are injected: a search backend (required), an LLM client,
    a semantic planner callable, and the rate-limit breaker shared by all LLM
    calls. Without an LLM the resolver runs the lexical path only.
    """

    def __init__(
        self,
        backend: SearchBackend,
        llm: ResolverLLM | None = None,
        planner: Planner | None = None,
        breaker: CircuitBreaker | None = None,
        settings: Settings | None = None,
        cache: TTLCache[str, QueryEntityBundle] | None = None,
    ):
        self.backend = backend
        self.llm = llm
        self.planner = planner
        self.breaker = breaker if breaker is not None else CircuitBreaker()
        self.settings = settings or default_settings
        if cache is None:
            cache = TTLCache(self.settings.bundle_cache_ttl_seconds, self.settings.bundle_cache_max_entries)
        self.cache = cache

    async def resolve_query_entities_bundle(self, query: str) -> QueryEntityBundle:
        """
        Resolve a query into a bundle. Never raises.

        Bundles are cached by normalized query text, so queries differing
        only in case, punctuation or whitespace share one result object.
        Callers must treat returned bundles as read-only.
        """
        trimmed = query.strip()
        cache_key = normalize(trimmed)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("bundle cache hit for %r", cache_key)
            return cached

        try:
            bundle = await self._resolve(trimmed)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("entity resolution failed for %r", trimmed)
            return QueryEntityBundle.empty(trimmed, "Entity resolution failed; returning an empty bundle.")

        if bundle.query_plan.anchors or bundle.disease_candidates or bundle.selected_disease is not None:
            self.cache.set(cache_key, bundle)
        return bundle

    async def _resolve(self, query: str) -> QueryEntityBundle:
        semantic_plan, relation_mentions = await asyncio.gather(
            self._semantic_plan(query),
            self._relation_mentions(query),
        )
        mentions = self._collect_mentions(query, semantic_plan, relation_mentions)
        rows = await self._search_rows(mentions)
        logger.debug("query %r: %d mentions, %d candidate rows", query, len(mentions), len(rows))

        resolved = await run_model_resolution(
            query, mentions, rows, self.llm, self.breaker, self.settings.thresholds
        )
        plan = merge_query_plans(resolved.query_plan, semantic_plan)
        rationale = resolved.rationale
        if semantic_plan is not None:
            rationale = f"{resolved.rationale} {semantic_plan.rationale}".strip()

        canonical = await asyncio.gather(*(self._canonicalize_target(anchor) for anchor in plan.anchors))
        anchors = [anchor for anchor in canonical if anchor is not None and keep_disease_anchor(anchor)]
        anchors = disambiguate_mention_target_disease_collisions(dedupe_anchors_semantically(anchors))
        # fallback and model paths can both list a mention that ended up anchored
        unresolved = filter_resolved_unresolved_mentions(plan.unresolved_mentions, anchors)[:MAX_PLAN_UNRESOLVED]

        return resolved.model_copy(
            update={
                "query_plan": plan.model_copy(update={"anchors": anchors, "unresolved_mentions": unresolved}),
                "rationale": rationale,
            }
        )

    async def _semantic_plan(self, query: str) -> ResolvedQueryPlan | None:
        if self.planner is None:
            return None
        return await with_deadline(
            self.planner(query), self.settings.plan_timeout_seconds, None, label="semantic planner"
        )

    async def _relation_mentions(self, query: str) -> list[str]:
        if self.llm is None or self.breaker.is_open():
            return []
        raw = await extract_relation_mentions_fast(
            query,
            self.llm,
            self.breaker,
            max_mentions=RELATION_MENTION_LIMIT,
            timeout=self.settings.relation_mentions_timeout_seconds,
        )
        mentions = []
        for item in raw:
            mention = normalize_relation_mention(item) or sanitize_mention(item)
            if len(mention) >= 3 and not is_generic_mechanism_mention(mention):
                mentions.append(mention)
        return mentions

    @staticmethod
    def _collect_mentions(
        query: str, semantic_plan: ResolvedQueryPlan | None, relation_mentions: list[str]
    ) -> list[str]:
        from_plan = mentions_from_query_plan(query, semantic_plan)
        lexical = from_plan or extract_mentions(query)
        merged: list[str] = []
        for mention in [*from_plan, *relation_mentions, *lexical]:
            normalized = sanitize_mention(mention)
            if not normalized or normalized in merged:
                continue
            merged.append(normalized)
            if len(merged) >= MAX_MENTIONS:
                break
        return prune_subsumed_single_token_mentions(merged)

    async def _search_rows(self, mentions: list[str]) -> list[MentionCandidate]:
        critical = [
            mention for mention in mentions if " " not in mention and _CRITICAL_SINGLE_TOKEN.match(mention)
        ]
        prioritized = list(dict.fromkeys([*mentions[:PRIORITY_HEAD], *critical]))[:MAX_PRIORITIZED]

        rows: list[MentionCandidate] = []
        seen: set[str] = set()

        def push(batches: list[list[MentionCandidate]]) -> None:
            for batch in batches:
                for row in batch:
                    if row.key in seen:
                        continue
                    seen.add(row.key)
                    rows.append(row)

        push(await gather_settled(self._search(mention) for mention in prioritized))

        disease_rows = sum(1 for row in rows if row.entity_type == "disease")
        if disease_rows < STAGE_TWO_MIN_DISEASE_ROWS or len(rows) < STAGE_TWO_MIN_ROWS:
            remaining = [mention for mention in mentions[:STAGE_TWO_POOL] if mention not in prioritized]
            push(await gather_settled(self._search(mention) for mention in remaining[:MAX_STAGE_TWO]))
        return rows

    def _search(self, mention: str) -> Awaitable[list[MentionCandidate]]:
        return search_mention_candidates(
            mention,
            self.backend,
            timeout=self.settings.search_timeout_seconds,
            limit=self.settings.search_limit,
        )

    async def _canonicalize_target(self, anchor: QueryPlanAnchor) -> QueryPlanAnchor | None:
        """
        Re-point a target anchor at the target whose symbol the mention spells out.

        Returns None (drop the anchor) when no exact symbol match is found.
        """
        if anchor.entity_type != "target":
            return anchor
        symbol = target_symbol_hint_from_mention(anchor.mention)
        if symbol is None or alnum_compact(anchor.name).upper() == symbol:
            return anchor
        hits = await with_deadline(
            self.backend.search_targets(symbol, self.settings.search_limit),
            self.settings.search_timeout_seconds,
            [],
            label=f"search_targets({symbol!r})",
        )
        exact = next((hit for hit in hits if alnum_compact(hit.name).upper() == symbol), None)
        if exact is None:
            return None
        return anchor.model_copy(
            update={
                "id": exact.id,
                "name": exact.name,
                "description": exact.description,
                "confidence": max(anchor.confidence, CANONICAL_TARGET_CONFIDENCE),
            }
        )


_default_resolver: EntityResolver | None = None


def get_default_resolver() -> EntityResolver:
    """Shared resolver over OpenTargets + ChEMBL, with an LLM when OPENAI_API_KEY is set."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = EntityResolver(CompositeSearchBackend(), llm=create_client())
    return _default_resolver


async def resolve_query_entities_bundle(query: str) -> QueryEntityBundle:
    """Resolve a query with the shared default resolver."""
    return await get_default_resolver().resolve_query_entities_bundle(query)
