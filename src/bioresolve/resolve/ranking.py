"""
Disease ranking and deterministic primary-disease selection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bioresolve.config import ResolverThresholds, settings
from bioresolve.resolve.schemas import DiseaseCandidate, MentionCandidate, RankedDiseaseCandidate
from bioresolve.resolve.similarity import similarity
from bioresolve.resolve.text import has_relation_intent, is_measurement_like, normalize, tokenize

MAX_RANKED_INPUT = 24
MAX_RANKED_OUTPUT = 14

_ONTOLOGY_BONUS = re.compile(r"^(EFO|MONDO|DOID|ORPHANET)_", re.IGNORECASE)
_PHENOTYPE_ID = re.compile(r"^HP_", re.IGNORECASE)

_ID_PRIORITY = (
    (re.compile(r"^EFO_", re.IGNORECASE), 6),
    (re.compile(r"^MONDO_", re.IGNORECASE), 5),
    (re.compile(r"^ORPHANET_", re.IGNORECASE), 4),
    (re.compile(r"^DOID_", re.IGNORECASE), 3),
    (re.compile(r"^HP_", re.IGNORECASE), 2),
)


def disease_id_priority(disease_id: str) -> int:
    """EFO > MONDO > ORPHANET > DOID > HP > anything else."""
    for pattern, priority in _ID_PRIORITY:
        if pattern.match(disease_id):
            return priority
    return 1


def ontology_adjustment(disease_id: str) -> float:
    # HP terms are phenotypes, not diseases
    if _ONTOLOGY_BONUS.match(disease_id):
        return 0.5
    if _PHENOTYPE_ID.match(disease_id):
        return -0.3
    return 0.0


@dataclass
class _Aggregate:
    id: str
    name: str
    description: str | None
    best_similarity: float
    mentions: set[str] = field(default_factory=set)


def disease_candidates_from_rows(query: str, rows: list[MentionCandidate]) -> list[RankedDiseaseCandidate]:
    """
    Rank the disease rows found for all mentions of a query.

    Rows are grouped by disease id. Each group is scored from its best mention
    similarity, similarity to the whole query, best row score, query token
    coverage, how many mentions found it, a bonus when the query spells out the
    name, a penalty per name token absent from the query, and an ontology
    adjustment. Returns at most 14 candidates, best first.
    """
    by_id: dict[str, _Aggregate] = {}
    for row in rows:
        if row.entity_type != "disease" or is_measurement_like(row.name, row.description):
            continue
        existing = by_id.get(row.id)
        if existing is not None:
            existing.best_similarity = max(existing.best_similarity, row.score)
            existing.mentions.add(row.mention)
            continue
        by_id[row.id] = _Aggregate(row.id, row.name, row.description, row.score, {row.mention})

    normalized_query = normalize(query)
    query_tokens = set(tokenize(query))
    ranked = []
    for item in list(by_id.values())[:MAX_RANKED_INPUT]:
        mention_support = min(0.8, (len(item.mentions) - 1) * 0.2)
        normalized_name = normalize(item.name)
        literal_bonus = 2.4 if normalized_name and normalized_name in normalized_query else 0.0
        query_similarity = similarity(query, item.name)
        mention_similarity = max((similarity(mention, item.name) for mention in item.mentions), default=0.0)
        name_tokens = tokenize(item.name)
        if name_tokens:
            matched = sum(1 for token in name_tokens if token in query_tokens)
            coverage = matched / len(name_tokens)
            unmatched_penalty = (len(name_tokens) - matched) * 0.38
        else:
            coverage = 0.0
            unmatched_penalty = 0.0
        score = (
            mention_similarity * 2.8
            + query_similarity * 1.6
            + item.best_similarity * 1.2
            + coverage * 1.2
            + mention_support
            + literal_bonus
            - unmatched_penalty
            + ontology_adjustment(item.id)
        )
        ranked.append(
            RankedDiseaseCandidate(id=item.id, name=item.name, description=item.description, score=score)
        )

    ranked.sort(key=lambda candidate: candidate.score, reverse=True)
    return ranked[:MAX_RANKED_OUTPUT]


def pick_deterministic_disease_selection(
    query: str,
    ranked: list[RankedDiseaseCandidate],
    has_disease_anchor: bool = False,
    has_non_disease_signal: bool = False,
    thresholds: ResolverThresholds | None = None,
) -> DiseaseCandidate | None:
    """
    Pick zero or one primary disease from ranked candidates.

    A lone candidate is accepted unless non-disease signals dominate and it is
    weak. With several candidates the top one must be a clear leader, except
    that an unclear top is still accepted when the query has no relational
    language.
    """
    thresholds = thresholds or settings.thresholds
    if not ranked:
        return None

    top = ranked[0]
    requires_strong_score = has_non_disease_signal and not has_disease_anchor
    if requires_strong_score and top.score < thresholds.weak_single_candidate_score:
        return None
    if len(ranked) == 1:
        return top.public()

    runner_up = ranked[1]
    clear_top = (
        top.score >= thresholds.clear_leader_min_score
        and top.score - runner_up.score >= thresholds.clear_leader_margin
    )
    if not clear_top and has_relation_intent(query):
        return None
    return top.public()
