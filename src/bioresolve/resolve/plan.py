"""
Query plan merging and anchor post-processing.
"""

from __future__ import annotations

import re

from bioresolve.resolve.ranking import disease_id_priority
from bioresolve.resolve.schemas import (
    DEFAULT_INTENT,
    MAX_PLAN_ANCHORS,
    MAX_PLAN_CONSTRAINTS,
    MAX_PLAN_FOLLOWUPS,
    MAX_PLAN_UNRESOLVED,
    QueryPlanAnchor,
    QueryPlanConstraint,
    QueryPlanFollowup,
    ResolvedQueryPlan,
)
from bioresolve.resolve.similarity import similarity
from bioresolve.resolve.text import (
    MECHANISM_WORD_PATTERN,
    alnum_compact,
    is_generic_mechanism_mention,
    normalize,
    sanitize_mention,
    split_tokens,
    trim_mechanism_words,
)

_DIRECT_DISEASE_CUE = re.compile(
    r"\b(?:disease|disorder|syndrome|cancer|carcinoma|tumou?r|diabetes|obesity|lupus|arthritis|"
    r"sclerosis|colitis|asthma|fibrosis|infection)\b",
    re.IGNORECASE,
)
_TARGET_LEXEME = re.compile(r"\b(?:gene|protein|receptor|kinase|enzyme|channel|target)\b", re.IGNORECASE)
_SYMBOL_HINT = re.compile(r"^[a-z]{2,6}\d{1,3}[a-z]?$", re.IGNORECASE)

COLLISION_DISEASE_CONFIDENCE = 0.82
MIN_ANCHOR_CONFIDENCE = 0.2
MAX_ANCHOR_CONFIDENCE = 0.98


def pick_preferred_anchor(existing: QueryPlanAnchor, candidate: QueryPlanAnchor) -> QueryPlanAnchor:
    """Higher confidence wins; then ontology priority between diseases; then the shorter name."""
    if candidate.confidence != existing.confidence:
        return candidate if candidate.confidence > existing.confidence else existing
    if existing.entity_type == "disease" and candidate.entity_type == "disease":
        existing_priority = disease_id_priority(existing.id)
        candidate_priority = disease_id_priority(candidate.id)
        if candidate_priority != existing_priority:
            return candidate if candidate_priority > existing_priority else existing
    if len(candidate.name) < len(existing.name):
        return candidate
    return existing


def dedupe_anchors_semantically(anchors: list[QueryPlanAnchor]) -> list[QueryPlanAnchor]:
    """Collapse anchors sharing (entity_type, normalized name)."""
    by_name: dict[str, QueryPlanAnchor] = {}
    for anchor in anchors:
        key = f"{anchor.entity_type}:{normalize(anchor.name)}"
        existing = by_name.get(key)
        by_name[key] = anchor if existing is None else pick_preferred_anchor(existing, anchor)
    return list(by_name.values())


def _canonical_compact(value: str) -> str:
    compact_value = alnum_compact(value)
    if len(compact_value) >= 5 and compact_value.endswith("s"):
        return compact_value[:-1]
    return compact_value


def filter_resolved_unresolved_mentions(unresolved: list[str], anchors: list[QueryPlanAnchor]) -> list[str]:
    """
    Drop unresolved mentions already covered by a resolved anchor.

    A mention is covered when its normalized form equals an anchor's mention or
    name, or when its compact form (alphanumerics only, trailing 's' dropped)
    contains or is contained in one. Generic mechanism phrases are dropped, and
    so are plain single words once any disease anchor is resolved.
    """
    resolved_forms: set[str] = set()
    resolved_compact: set[str] = set()
    for anchor in anchors:
        for value in (anchor.mention, anchor.name):
            normalized = normalize(value)
            if not normalized:
                continue
            resolved_forms.add(normalized)
            compact_value = _canonical_compact(value)
            if compact_value:
                resolved_compact.add(compact_value)

    has_disease_anchor = any(anchor.entity_type == "disease" for anchor in anchors)
    kept = []
    for mention in unresolved:
        normalized = normalize(mention)
        if not normalized or is_generic_mechanism_mention(mention):
            continue
        if (
            has_disease_anchor
            and len(split_tokens(normalized)) == 1
            and not re.search(r"[0-9]", normalized)
            and not re.search(r"[A-Z]", mention)
            and not re.search(r"[-+]", mention)
        ):
            continue
        if normalized in resolved_forms:
            continue
        compact_value = _canonical_compact(mention)
        if compact_value:
            if compact_value in resolved_compact:
                continue
            if any(
                len(token) >= 4 and len(compact_value) >= 4 and (token in compact_value or compact_value in token)
                for token in resolved_compact
            ):
                continue
        kept.append(mention)
    return kept


def merge_query_plans(base: ResolvedQueryPlan, augment: ResolvedQueryPlan | None) -> ResolvedQueryPlan:
    """
    Combine the bundled plan with an independently produced semantic plan.

    With no augmenting plan the base plan is returned as is.
    """
    if augment is None:
        return base

    # planner anchors arrive unclamped
    augment_anchors = [
        anchor.model_copy(
            update={"confidence": min(MAX_ANCHOR_CONFIDENCE, max(MIN_ANCHOR_CONFIDENCE, anchor.confidence))}
        )
        for anchor in augment.anchors
    ]
    anchors: dict[str, QueryPlanAnchor] = {}
    for anchor in [*base.anchors, *augment_anchors]:
        existing = anchors.get(anchor.key)
        if existing is None or anchor.confidence > existing.confidence:
            anchors[anchor.key] = anchor

    constraints: dict[str, QueryPlanConstraint] = {}
    for item in [*base.constraints, *augment.constraints]:
        constraints[f"{item.polarity}:{item.text.lower()}"] = item

    followups: dict[str, QueryPlanFollowup] = {}
    for item in [*base.followups, *augment.followups]:
        followups[item.question.lower()] = item

    merged_anchors = dedupe_anchors_semantically(list(anchors.values()))[:MAX_PLAN_ANCHORS]
    unresolved = list(dict.fromkeys([*base.unresolved_mentions, *augment.unresolved_mentions]))
    unresolved = filter_resolved_unresolved_mentions(unresolved[:MAX_PLAN_UNRESOLVED], merged_anchors)

    intent = augment.intent if augment.intent and augment.intent != DEFAULT_INTENT else base.intent
    return ResolvedQueryPlan(
        query=base.query,
        intent=intent,
        anchors=merged_anchors,
        constraints=list(constraints.values())[:MAX_PLAN_CONSTRAINTS],
        unresolved_mentions=unresolved,
        followups=list(followups.values())[:MAX_PLAN_FOLLOWUPS],
        rationale=f"{base.rationale} {augment.rationale}".strip(),
    )


def keep_disease_anchor(anchor: QueryPlanAnchor) -> bool:
    """False for disease anchors whose mention does not really name that disease."""
    if anchor.entity_type != "disease":
        return True
    mention = sanitize_mention(anchor.mention)
    if not mention:
        return True
    if similarity(mention, anchor.name) >= 0.45 or _DIRECT_DISEASE_CUE.search(mention):
        return True
    if MECHANISM_WORD_PATTERN.search(mention):
        return False
    if len(split_tokens(mention)) <= 2 and anchor.confidence < 0.72:
        return False
    return True


def target_symbol_hint_from_mention(mention: str) -> str | None:
    """'il6 signaling' -> 'IL6'; None when the mention carries no gene symbol."""
    symbol = alnum_compact(trim_mechanism_words(mention) or mention)
    if not _SYMBOL_HINT.match(symbol):
        return None
    return symbol.upper()


def is_explicit_target_lexeme(mention: str) -> bool:
    normalized = sanitize_mention(mention)
    if not normalized:
        return False
    if re.search(r"[0-9\-+]", normalized):
        return True
    return bool(_TARGET_LEXEME.search(normalized))


def disambiguate_mention_target_disease_collisions(anchors: list[QueryPlanAnchor]) -> list[QueryPlanAnchor]:
    """
    Drop target anchors that share a mention with a confident disease anchor.

    Targets survive when their mention reads explicitly as a target (digits,
    hyphens, or words like 'receptor').
    """
    disease_confidence: dict[str, float] = {}
    for anchor in anchors:
        if anchor.entity_type != "disease":
            continue
        key = normalize(anchor.mention or anchor.name)
        if key and anchor.confidence > disease_confidence.get(key, 0.0):
            disease_confidence[key] = anchor.confidence

    kept = []
    for anchor in anchors:
        if anchor.entity_type == "target":
            key = normalize(anchor.mention or anchor.name)
            if (
                key
                and disease_confidence.get(key, 0.0) >= COLLISION_DISEASE_CONFIDENCE
                and not is_explicit_target_lexeme(anchor.mention)
            ):
                continue
        kept.append(anchor)
    return kept
