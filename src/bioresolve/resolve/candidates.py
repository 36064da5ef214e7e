"""
Candidate search for a single mention.

Each mention is expanded into a few lexical variants, every variant is looked
up against disease/target/drug/drug-candidate search, and the hits are scored
by lexical similarity, filtered by a per-category cutoff, and boosted.
"""

from __future__ import annotations

import asyncio
import logging
import re

from bioresolve.config import settings
from bioresolve.resolve.concurrency import with_deadline
from bioresolve.resolve.schemas import CandidateEntityType, MentionCandidate
from bioresolve.resolve.similarity import similarity
from bioresolve.resolve.text import (
    alnum_compact,
    has_disease_cue,
    is_generic_mechanism_mention,
    is_likely_symbol_mention,
    is_measurement_like,
    tokenize,
    trim_mechanism_words,
)
from bioresolve.sources.base import SearchBackend, SearchHit

logger = logging.getLogger(__name__)

DISEASE_ID_PATTERN = re.compile(r"^(EFO|MONDO|ORPHANET|DOID|HP)[_:]", re.IGNORECASE)
_CHEMBL_ID_PATTERN = re.compile(r"^CHEMBL", re.IGNORECASE)
_ALPHA_DIGIT_JOIN = re.compile(r"^([A-Za-z]{2,})([0-9]{1,3})$")
_SHORT_TOKEN = re.compile(r"^[a-z0-9-]{2,8}$", re.IGNORECASE)
_SPLITTABLE_SYMBOL = re.compile(r"^[a-z]{2,6}[0-9]{1,3}$", re.IGNORECASE)
_HINT_SYMBOL = re.compile(r"^[a-z]{2,6}\d{1,3}[a-z]?$", re.IGNORECASE)
_LOWER_ALPHA_WORD = re.compile(r"^[a-z]{4,}$")

MAX_VARIANTS = 4
MAX_MERGED_ROWS = 16


def mention_variants(mention: str) -> list[str]:
    """Lexical spellings of a mention to search for, original first (at most 4)."""
    mention = mention.strip()
    if not mention:
        return []
    variants = [mention]

    def add(value: str) -> None:
        if value and value not in variants:
            variants.append(value)

    joined = re.sub(r"\s+", "", mention)
    match = _ALPHA_DIGIT_JOIN.match(joined)
    if match:
        add(f"{match.group(1)}-{match.group(2)}")
        add(f"{match.group(1)} {match.group(2)}")
    if "'" in mention:
        add(mention.replace("'", ""))
    if "-" in mention:
        add(mention.replace("-", " "))
    if _SHORT_TOKEN.match(joined) and " " not in mention:
        add(joined.upper())
    if _SPLITTABLE_SYMBOL.match(joined) and "-" not in mention:
        split_at = re.search(r"[0-9]", joined).start()
        if split_at > 1:
            add(f"{joined[:split_at]}-{joined[split_at:]}")
    trimmed = trim_mechanism_words(mention)
    if len(trimmed) >= 2 and trimmed != mention:
        add(trimmed)
    return variants[:MAX_VARIANTS]


def target_hint_tokens(mention: str) -> set[str]:
    """Spellings of a gene symbol carried by the mention ('il6' -> 'il-6', 'interleukin 6', ...)."""
    base = trim_mechanism_words(mention) or mention
    symbol = alnum_compact(base)
    if not _HINT_SYMBOL.match(symbol):
        return set()
    hints = {symbol}
    split_at = re.search(r"[0-9]", symbol).start()
    if split_at > 1:
        prefix, suffix = symbol[:split_at], symbol[split_at:]
        hints.add(f"{prefix}-{suffix}")
        hints.add(f"{prefix} {suffix}")
        if prefix == "il":
            hints.add(f"interleukin {suffix}")
    return hints


def row_cutoff(entity_type: CandidateEntityType, mention: str) -> float:
    """Minimum score a row of this type needs to survive for this mention."""
    single_token = len(tokenize(mention)) <= 1
    generic = is_generic_mechanism_mention(mention)
    if entity_type == "disease":
        if single_token:
            cutoff = 0.66 if _LOWER_ALPHA_WORD.match(mention) else 0.5
        else:
            cutoff = 0.7 if generic else 0.34
    elif single_token:
        cutoff = 0.52
    elif generic:
        cutoff = 0.46 if is_likely_symbol_mention(mention) else 0.72
    else:
        cutoff = 0.4
    if entity_type != "disease" and has_disease_cue(mention):
        cutoff += 0.18
    return cutoff


def _unique(rows: list[SearchHit], seen: set[str]) -> list[SearchHit]:
    fresh = []
    for row in rows:
        if row.id in seen:
            continue
        seen.add(row.id)
        fresh.append(row)
    return fresh


async def _lookup_variants(
    backend: SearchBackend, variants: list[str], timeout: float, limit: int
) -> tuple[list[SearchHit], list[SearchHit], list[SearchHit]]:
    diseases: list[SearchHit] = []
    targets: list[SearchHit] = []
    drugs: list[SearchHit] = []
    disease_seen: set[str] = set()
    target_seen: set[str] = set()
    drug_seen: set[str] = set()

    lookups = []
    for variant in variants:
        lookups.extend(
            [
                with_deadline(backend.search_diseases(variant, limit), timeout, [], f"search_diseases({variant!r})"),
                with_deadline(backend.search_targets(variant, limit), timeout, [], f"search_targets({variant!r})"),
                with_deadline(backend.search_drugs(variant, limit), timeout, [], f"search_drugs({variant!r})"),
                with_deadline(
                    backend.search_drug_candidates(variant, limit),
                    timeout,
                    [],
                    f"search_drug_candidates({variant!r})",
                ),
            ]
        )
    results = await asyncio.gather(*lookups)

    # merge in variant order so earlier variants win duplicate ids
    for offset in range(0, len(results), 4):
        disease_hits, target_hits, drug_hits, candidate_hits = results[offset : offset + 4]
        diseases.extend(_unique(disease_hits, disease_seen))
        targets.extend(_unique(target_hits, target_seen))
        drugs.extend(_unique(drug_hits, drug_seen))
        drugs.extend(_unique(candidate_hits, drug_seen))

    return diseases, targets, drugs


def _score_rows(
    mention: str, diseases: list[SearchHit], targets: list[SearchHit], drugs: list[SearchHit]
) -> list[MentionCandidate]:
    rows = []
    for hit in diseases:
        if not DISEASE_ID_PATTERN.match(hit.id) or is_measurement_like(hit.name, hit.description):
            continue
        rows.append(
            MentionCandidate(
                mention=mention,
                entity_type="disease",
                id=hit.id,
                name=hit.name,
                description=hit.description,
                score=similarity(mention, hit.name),
            )
        )
    for hit in targets:
        rows.append(
            MentionCandidate(
                mention=mention,
                entity_type="target",
                id=hit.id,
                name=hit.name,
                description=hit.description,
                score=max(similarity(mention, hit.name), similarity(mention, hit.description or "")),
            )
        )
    for hit in drugs:
        rows.append(
            MentionCandidate(
                mention=mention,
                entity_type="drug",
                id=hit.id,
                name=hit.name,
                description=hit.description,
                score=max(
                    similarity(mention, hit.name),
                    similarity(mention, hit.description or ""),
                    similarity(mention, hit.id),
                ),
                source="chembl" if _CHEMBL_ID_PATTERN.match(hit.id) else "opentargets",
            )
        )
    return rows


def _boost(mention: str, rows: list[MentionCandidate]) -> list[MentionCandidate]:
    hints = target_hint_tokens(mention)
    disease_cue = has_disease_cue(mention)
    boosted = []
    for row in rows:
        score = row.score
        if row.entity_type == "target" and hints:
            haystack = f"{row.name} {row.description or ''}".lower()
            score += 0.45 if any(hint in haystack for hint in hints) else -0.12
        if disease_cue:
            score += 0.34 if row.entity_type == "disease" else -0.22
        boosted.append(row if score == row.score else row.with_score(score))
    return sorted(boosted, key=lambda row: row.score, reverse=True)


def filter_rows(mention: str, rows: list[MentionCandidate]) -> list[MentionCandidate]:
    """Keep the top rows per (entity_type, id) that clear their category cutoff, then boost."""
    merged = sorted(rows, key=lambda row: row.score, reverse=True)[:MAX_MERGED_ROWS]
    deduped: dict[str, MentionCandidate] = {}
    for row in merged:
        existing = deduped.get(row.key)
        if existing is None or row.score > existing.score:
            deduped[row.key] = row
    kept = [row for row in deduped.values() if row.score >= row_cutoff(row.entity_type, mention)]
    return _boost(mention, kept)


async def search_mention_candidates(
    mention: str,
    backend: SearchBackend,
    timeout: float | None = None,
    limit: int | None = None,
) -> list[MentionCandidate]:
    """
    Search every collaborator for a mention and return scored, filtered rows.

    Never raises. Individual lookups that time out or fail contribute no rows;
    if all of them do, the result is an empty list.
    """
    mention = mention.strip()
    if not mention:
        return []
    timeout = settings.search_timeout_seconds if timeout is None else timeout
    limit = settings.search_limit if limit is None else limit

    try:
        diseases, targets, drugs = await _lookup_variants(backend, mention_variants(mention), timeout, limit)
        return filter_rows(mention, _score_rows(mention, diseases, targets, drugs))
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("candidate search failed for %r", mention)
        return []
