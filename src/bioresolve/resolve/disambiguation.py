"""
Mention disambiguation: lexical fallback or one schema-constrained LLM call.

    should_skip_semantic_resolution ── yes ──> fallback_bundle
            │ no
            v
    LLM call ──> validate anchors ──> pick primary disease ──> (tie) arbitration
            │ any error
            v
    fallback_bundle
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import Counter

from bioresolve.config import ResolverThresholds, settings
from bioresolve.errors import ResolverError
from bioresolve.llm.client import ResolverLLM
from bioresolve.llm.disease_arbiter import choose_best_disease_candidate
from bioresolve.llm.prompts import format_resolution_messages
from bioresolve.llm.rate_limit import CircuitBreaker
from bioresolve.llm.schemas import CandidateRow, MentionCandidates, ResolutionModelResult
from bioresolve.resolve.ranking import disease_candidates_from_rows, pick_deterministic_disease_selection
from bioresolve.resolve.schemas import (
    DEFAULT_INTENT,
    DiseaseCandidate,
    MentionCandidate,
    QueryEntityBundle,
    QueryPlanAnchor,
    QueryPlanConstraint,
    RankedDiseaseCandidate,
    ResolvedQueryPlan,
)
from bioresolve.resolve.similarity import similarity
from bioresolve.resolve.text import alnum_compact, compact, has_disease_cue, has_relation_intent, tokenize

logger = logging.getLogger(__name__)

FALLBACK_RATIONALE = "Lexical bundled resolver fallback."
MODEL_RATIONALE = "Bundled semantic entity resolution."

MAX_ROWS_PER_MENTION = 6
MAX_MODEL_ANCHORS = 16
MAX_MODEL_CONSTRAINTS = 8
MAX_BUNDLE_UNRESOLVED = 8
MAX_FALLBACK_ROWS = 3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _anchor_from_row(row: MentionCandidate, mention: str, confidence: float) -> QueryPlanAnchor:
    return QueryPlanAnchor(
        mention=mention,
        entity_type=row.entity_type,
        id=row.id,
        name=row.name,
        description=row.description,
        confidence=confidence,
        source=row.source,
    )


def _select_primary_disease(
    query: str,
    ranked: list[RankedDiseaseCandidate],
    anchors: list[QueryPlanAnchor],
    rows: list[MentionCandidate],
    thresholds: ResolverThresholds,
    preferred_ids: tuple[str | None, ...] = (),
) -> DiseaseCandidate | None:
    has_disease_anchor = any(anchor.entity_type == "disease" for anchor in anchors)
    has_non_disease_signal = any(row.entity_type != "disease" for row in rows)
    has_strong_non_disease_anchor = any(
        anchor.entity_type != "disease" and anchor.confidence >= thresholds.strong_non_disease_confidence
        for anchor in anchors
    )

    by_id = {candidate.id: candidate.public() for candidate in ranked}
    selected = next((by_id[item] for item in preferred_ids if item and item in by_id), None)
    if selected is None:
        selected = pick_deterministic_disease_selection(
            query,
            ranked,
            has_disease_anchor=has_disease_anchor,
            has_non_disease_signal=has_non_disease_signal,
            thresholds=thresholds,
        )

    top_score = ranked[0].score if ranked else -math.inf
    if not has_disease_anchor and has_strong_non_disease_anchor and top_score < thresholds.weak_top_disease_score:
        return None
    return selected


def should_skip_semantic_resolution(
    query: str,
    rows: list[MentionCandidate],
    llm: ResolverLLM | None,
    breaker: CircuitBreaker | None = None,
    thresholds: ResolverThresholds | None = None,
) -> bool:
    """True when the LLM call should be bypassed in favor of the lexical bundle."""
    thresholds = thresholds or settings.thresholds
    if llm is None or (breaker is not None and breaker.is_open()):
        return True
    if not rows:
        return True

    disease_candidates = disease_candidates_from_rows(query, rows)
    has_non_disease = any(row.entity_type != "disease" for row in rows)
    rows_per_mention = Counter(row.mention for row in rows)
    ambiguous_mentions = sum(1 for count in rows_per_mention.values() if count > 1)

    single_strong_disease = (
        len(disease_candidates) == 1 and disease_candidates[0].score >= thresholds.skip_single_disease_score
    )
    if (
        single_strong_disease
        and ambiguous_mentions == 0
        and not has_relation_intent(query)
        and not has_non_disease
        and len(tokenize(query)) <= thresholds.skip_max_query_tokens
    ):
        return True
    if len(rows) <= thresholds.skip_max_rows and len(disease_candidates) <= 1 and not has_non_disease:
        return True
    return False


def fallback_bundle(
    query: str,
    mentions: list[str],
    rows: list[MentionCandidate],
    thresholds: ResolverThresholds | None = None,
) -> QueryEntityBundle:
    """Fully lexical bundle: each mention takes its best row if it clears the mention threshold."""
    thresholds = thresholds or settings.thresholds
    by_mention: dict[str, list[MentionCandidate]] = {}
    for row in rows:
        by_mention.setdefault(row.mention, []).append(row)

    anchors: list[QueryPlanAnchor] = []
    unresolved: list[str] = []
    for mention in mentions:
        mention_rows = sorted(by_mention.get(mention, []), key=lambda row: row.score, reverse=True)
        top = mention_rows[0] if mention_rows else None
        threshold = 0.58 if len(mention.split(" ")) <= 1 else 0.32
        if has_disease_cue(mention):
            top_disease = next((row for row in mention_rows if row.entity_type == "disease"), None)
            if top_disease is not None and top_disease.score >= max(0.24, threshold - 0.08):
                top = top_disease
        if top is None or top.score < threshold:
            unresolved.append(mention)
            continue
        anchors.append(_anchor_from_row(top, mention, _clamp(top.score, 0.2, 0.95)))

    if not anchors:
        ranked_rows = sorted(rows, key=lambda row: row.score, reverse=True)[:10]
        disease_rows = [row for row in ranked_rows if row.entity_type == "disease"]
        other_rows = [row for row in ranked_rows if row.entity_type != "disease"]
        for row in (disease_rows or other_rows or ranked_rows)[:MAX_FALLBACK_ROWS]:
            anchors.append(_anchor_from_row(row, row.mention, _clamp(row.score, 0.2, 0.95)))

    ranked = disease_candidates_from_rows(query, rows)
    selected = _select_primary_disease(query, ranked, anchors, rows, thresholds)
    return QueryEntityBundle(
        query=query,
        query_plan=ResolvedQueryPlan(
            query=query,
            anchors=anchors,
            unresolved_mentions=unresolved[:MAX_BUNDLE_UNRESOLVED],
            rationale=FALLBACK_RATIONALE,
        ),
        selected_disease=selected,
        disease_candidates=[candidate.public() for candidate in ranked],
        rationale=FALLBACK_RATIONALE,
        openai_calls=0,
    )


def _validated_anchors(
    result: ResolutionModelResult,
    candidates: dict[str, MentionCandidate],
    thresholds: ResolverThresholds,
) -> list[QueryPlanAnchor]:
    """Keep model anchors that reference supplied candidates and plausibly name them."""
    anchors = []
    for anchor in result.anchors:
        hit = candidates.get(f"{anchor.entity_type}:{anchor.id}")
        if hit is None:
            continue
        mention = anchor.mention or hit.mention
        raw_confidence = anchor.confidence if math.isfinite(anchor.confidence) else hit.score
        confidence = _clamp(raw_confidence, 0.2, 0.98)
        mention_compact = alnum_compact(mention)
        symbol_like = len(tokenize(mention)) <= 1 and 0 < len(mention_compact) <= 8
        if hit.entity_type == "disease" and not symbol_like:
            name_similarity = similarity(mention, hit.name)
            if name_similarity < thresholds.disease_anchor_min_similarity or (
                confidence < thresholds.disease_anchor_low_confidence
                and name_similarity < thresholds.disease_anchor_low_conf_similarity
            ):
                continue
        anchors.append(_anchor_from_row(hit, compact(mention, 90), confidence))
    return anchors


async def run_model_resolution(
    query: str,
    mentions: list[str],
    rows: list[MentionCandidate],
    llm: ResolverLLM | None,
    breaker: CircuitBreaker | None = None,
    thresholds: ResolverThresholds | None = None,
) -> QueryEntityBundle:
    """
    Resolve mentions with one LLM call, falling back to the lexical bundle.

    Never raises. Model output may only reference the supplied candidate
    rows; anything else is discarded.
    """
    thresholds = thresholds or settings.thresholds
    if llm is None or should_skip_semantic_resolution(query, rows, llm, breaker, thresholds):
        return fallback_bundle(query, mentions, rows, thresholds)

    candidates = {row.key: row for row in rows}
    grouped = [
        MentionCandidates(
            mention=mention,
            candidates=[
                CandidateRow(
                    entity_type=row.entity_type,
                    id=row.id,
                    name=row.name,
                    description=row.description,
                    score=round(row.score, 3),
                )
                for row in [row for row in rows if row.mention == mention][:MAX_ROWS_PER_MENTION]
            ],
        )
        for mention in mentions
    ]

    try:
        result = await llm.create_structured(
            format_resolution_messages(query, grouped),
            ResolutionModelResult,
            model=llm.config.small_model,
            max_tokens=llm.config.resolution_max_tokens,
            timeout=llm.config.resolution_timeout_seconds,
        )
        if breaker is not None:
            breaker.record_success()

        anchors = _validated_anchors(result, candidates, thresholds)
        ranked = disease_candidates_from_rows(query, rows)
        disease_candidates = [candidate.public() for candidate in ranked]
        first_disease_anchor = next((anchor.id for anchor in anchors if anchor.entity_type == "disease"), None)
        selected = _select_primary_disease(
            query,
            ranked,
            anchors,
            rows,
            thresholds,
            preferred_ids=(result.primary_disease_id, first_disease_anchor),
        )

        openai_calls = 1
        has_disease_anchor = first_disease_anchor is not None
        has_non_disease_signal = any(row.entity_type != "disease" for row in rows)
        if len(disease_candidates) > 1 and (has_disease_anchor or not has_non_disease_signal):
            try:
                arbitration = await choose_best_disease_candidate(query, disease_candidates, llm, breaker)
            except ResolverError as exc:
                logger.debug("disease arbitration skipped: %s", exc)
            else:
                selected = arbitration.selected
                if arbitration.used_llm:
                    openai_calls += 1

        rationale = result.rationale or MODEL_RATIONALE
        return QueryEntityBundle(
            query=query,
            query_plan=ResolvedQueryPlan(
                query=query,
                intent=result.intent or DEFAULT_INTENT,
                anchors=anchors[:MAX_MODEL_ANCHORS],
                constraints=[
                    QueryPlanConstraint(text=item.text, polarity=item.polarity)
                    for item in result.constraints[:MAX_MODEL_CONSTRAINTS]
                ],
                unresolved_mentions=result.unresolved_mentions[:MAX_BUNDLE_UNRESOLVED],
                rationale=rationale,
            ),
            selected_disease=selected,
            disease_candidates=disease_candidates,
            rationale=rationale,
            openai_calls=openai_calls,
        )
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.info("model resolution failed, using lexical fallback: %s", exc)
        if breaker is not None:
            breaker.record_failure(exc)
        return fallback_bundle(query, mentions, rows, thresholds)
