"""
Disease arbitration: pick one disease among close candidates.

The LLM's pick is checked against a lexical disease-intent score and
overridden when it looks like a qualifier term ("... measurement",
"... susceptibility") or scores far below the lexical pick.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from bioresolve.errors import ResolverError
from bioresolve.resolve.schemas import DiseaseCandidate

from .client import ResolverLLM
from .prompts import format_disease_arbitration_messages
from .rate_limit import CircuitBreaker
from .schemas import DiseaseSelection

logger = logging.getLogger(__name__)

PENALIZED_QUALIFIER_TERMS = (
    "biomarker",
    "measurement",
    "susceptibility",
    "risk",
    "severity",
    "progression",
    "response",
    "remission",
    "stage",
    "screening",
    "finding",
    "neuropathologic",
    "change",
    "trait",
)

DISEASE_AFFIRMATION_TERMS = (
    "disease",
    "cancer",
    "carcinoma",
    "arthritis",
    "leukemia",
    "lymphoma",
    "melanoma",
    "syndrome",
    "colitis",
    "asthma",
)

INTENT_SPLITTERS = (
    ",",
    "?",
    " what ",
    " which ",
    " where ",
    " when ",
    " how ",
    " should ",
    " would ",
    " with ",
    " showing ",
    " to identify ",
    " to evaluate ",
)

GUARDRAIL_MARGIN = 1.8

_TOKEN_ALIASES = {"carcinoma": "cancer", "tumour": "tumor"}


@dataclass(frozen=True)
class DiseaseArbitration:
    selected: DiseaseCandidate
    rationale: str
    # true only when the model answered
    used_llm: bool = False


@dataclass(frozen=True)
class _Scored:
    candidate: DiseaseCandidate
    score: float
    penalized: bool


def _normalize_text(value: str) -> str:
    value = re.sub(r"['’]", "", value.lower())
    value = re.sub(r"[^a-z0-9\s-]", " ", value)
    return re.sub(r"\s+", " ", value).strip()


def _intent_tokens(value: str) -> list[str]:
    tokens = []
    for token in _normalize_text(value).split(" "):
        if len(token) <= 1:
            continue
        if token.endswith("s") and len(token) > 4:
            token = token[:-1]
        tokens.append(_TOKEN_ALIASES.get(token, token))
    return tokens


def extract_disease_intent(query: str) -> str:
    """The leading disease phrase of a query ('lung cancer, what drugs ...' -> 'lung cancer')."""
    value = re.sub(r"^(for|in|about|regarding)\s+", "", _normalize_text(query))
    for splitter in INTENT_SPLITTERS:
        index = value.find(splitter)
        if index > 0:
            value = value[:index].strip()
    return value.strip()


def score_candidate(intent: str, candidate: DiseaseCandidate) -> tuple[float, bool]:
    """Lexical match score of a candidate name against the disease intent, and whether it is penalized."""
    name = _normalize_text(candidate.name)
    intent = _normalize_text(intent)
    score = 0.0
    if name == intent:
        score += 7
    if name.startswith(intent) and len(intent) > 3:
        score += 2.4
    if name in intent and len(name) > 3:
        score += 1.2

    intent_tokens = _intent_tokens(intent)
    name_tokens = _intent_tokens(name)
    name_set = set(name_tokens)
    intent_set = set(intent_tokens)
    shared = [token for token in intent_tokens if token in name_set]
    if shared:
        score += len(shared) * 1.35
        score += len(shared) / max(1, len(intent_tokens))
    if intent_tokens and len(shared) == len(intent_tokens):
        score += 2.2
    extra = sum(1 for token in name_tokens if token not in intent_set)
    score -= extra * 0.55
    if not shared:
        score -= 2

    if any(term in name for term in DISEASE_AFFIRMATION_TERMS):
        score += 0.5
    penalized = any(term in name for term in PENALIZED_QUALIFIER_TERMS)
    if penalized:
        score -= 2.8
    return score, penalized


def lexical_choice(query: str, candidates: list[DiseaseCandidate]) -> _Scored:
    intent = extract_disease_intent(query)
    scored = [_Scored(item, *score_candidate(intent, item)) for item in candidates]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[0]


def _lexical_rationale(choice: _Scored) -> str:
    if choice.penalized:
        return "Selected via lexical fallback with qualifier penalty guardrails."
    return "Selected via lexical disease-intent matching."


async def choose_best_disease_candidate(
    query: str,
    candidates: list[DiseaseCandidate],
    llm: ResolverLLM | None = None,
    breaker: CircuitBreaker | None = None,
) -> DiseaseArbitration:
    """
    Choose the best disease for a query.

    Without an LLM (or with a single candidate) the lexical pick is returned.
    LLM failures are recorded on the breaker and fall back to the lexical pick.

    Raises:
        ResolverError: if candidates is empty
    """
    if not candidates:
        raise ResolverError("No disease candidates available")

    fallback = lexical_choice(query, candidates)
    if llm is None or len(candidates) == 1 or (breaker is not None and breaker.is_open()):
        return DiseaseArbitration(fallback.candidate, _lexical_rationale(fallback))

    messages = format_disease_arbitration_messages(
        query, [item.model_dump(exclude_none=True) for item in candidates]
    )
    try:
        parsed = await llm.create_structured(
            messages,
            DiseaseSelection,
            model=llm.config.small_model,
            timeout=llm.config.arbitration_timeout_seconds,
        )
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.debug("disease arbitration failed: %s", exc)
        if breaker is not None:
            breaker.record_failure(exc)
        return DiseaseArbitration(
            fallback.candidate, "Semantic resolver unavailable; used lexical disease-intent fallback."
        )

    if breaker is not None:
        breaker.record_success()
    selected = next((item for item in candidates if item.id == parsed.selected_id), fallback.candidate)
    selected_score, selected_penalized = score_candidate(extract_disease_intent(query), selected)
    if (selected_penalized and not fallback.penalized) or fallback.score - selected_score > GUARDRAIL_MARGIN:
        return DiseaseArbitration(
            fallback.candidate,
            f"{_lexical_rationale(fallback)} Semantic resolver output was deprioritized by guardrails.",
            used_llm=True,
        )
    return DiseaseArbitration(selected, parsed.rationale.strip() or "Selected via semantic resolver.", used_llm=True)
