"""
Mention extraction.

Turns a raw query into short candidate entity mentions. Relational phrasings
("between A and B", "A vs B", "A leads to B", quoted phrases) are handled by an
ordered rule table; each rule can be exercised on its own via apply_rule().
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bioresolve.resolve.schemas import ResolvedQueryPlan
from bioresolve.resolve.text import (
    alnum_compact,
    collapse,
    is_generic_mechanism_mention,
    normalize_display,
    sanitize_mention,
    should_preserve_single_token_mention,
    split_tokens,
)

MAX_MENTIONS = 10
MAX_PLAN_MENTIONS = 8
MAX_STRUCTURED_MENTIONS = 8

_TAIL = r"(?:\s+(?:through|via|using|with)\s+(.+))?$"
_CAUSAL_TAIL = r"(?:\s+(?:through|via|using|with|by)\s+(.+))?$"
_CONNECT_WORDS = r"(?:connect|connection|relationship|link|overlap|related|relates)"


@dataclass(frozen=True)
class RelationRule:
    """A relational phrasing whose capture groups are entity mentions."""
    name: str
    pattern: re.Pattern[str]
    find_all: bool = False


RELATION_RULES: tuple[RelationRule, ...] = (
    RelationRule("between", re.compile(r"\bbetween\s+(.+?)\s+and\s+(.+?)" + _TAIL, re.IGNORECASE)),
    RelationRule(
        "connect",
        re.compile(
            rf"\b{_CONNECT_WORDS}\s+(?:between\s+)?(.+?)\s+(?:to|with|and|vs|versus)\s+(.+?)" + _TAIL,
            re.IGNORECASE,
        ),
    ),
    RelationRule(
        "connect_preceding",
        re.compile(rf"(.+?)\s+{_CONNECT_WORDS}\s+(?:to|with|and|vs|versus)\s+(.+?)" + _TAIL, re.IGNORECASE),
    ),
    RelationRule("versus", re.compile(r"\b(.+?)\s+(?:vs|versus)\s+(.+?)" + _TAIL, re.IGNORECASE)),
    RelationRule(
        "causal_verb",
        re.compile(
            r"\b(.+?)\s+(?:lead|leads|leading|drives?|driven|contributes?|causes?|triggers?|promotes?|"
            r"predisposes?)\s+(?:to\s+)?(.+?)" + _CAUSAL_TAIL,
            re.IGNORECASE,
        ),
    ),
    RelationRule(
        "causal_phrase",
        re.compile(
            r"\b(.+?)\s+(?:results?\s+in|linked\s+to|associated\s+with|correlat(?:ed|es?|ion)\s+with)\s+(.+?)"
            + _CAUSAL_TAIL,
            re.IGNORECASE,
        ),
    ),
    RelationRule("quoted", re.compile(r"[\"'`](.{2,90}?)[\"'`]"), find_all=True),
)

_LEADING_PREPOSITION = re.compile(r"^(?:through|via|by|using)\s+", re.IGNORECASE)
_LEADING_QUESTION_AUX = re.compile(
    r"^(?:how|what|which|why)\s+(?:might|may|does|do|did|is|are|can|could|would|will|should)\s+",
    re.IGNORECASE,
)
_LEADING_QUESTION = re.compile(r"^(?:how|what|which|why)\s+", re.IGNORECASE)
_LEADING_AUX = re.compile(r"^(?:might|may|does|do|did|is|are|can|could|would|will|should)\s+", re.IGNORECASE)
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_LEADING_CAUSAL = re.compile(
    r"^(?:lead(?:s|ing)?|driv(?:e|es|en|ing)|contribut(?:e|es|ed|ing)|caus(?:e|es|ed|ing)|"
    r"trigger(?:s|ed|ing)?|promot(?:e|es|ed|ing)|predispos(?:e|es|ed|ing)|link(?:s|ed|ing)?|"
    r"relat(?:e|es|ed|ing)|associat(?:e|es|ed|ing)|correlat(?:e|es|ed|ing)|connect(?:s|ed|ing)?)\s+(?:to\s+)?",
    re.IGNORECASE,
)
_LEADING_TO = re.compile(r"^(?:to|into|toward|towards)\s+", re.IGNORECASE)
_PREPOSITION_TAIL = re.compile(r"\b(?:in|for|of|with|through|via|by|using)\s+(.+)$", re.IGNORECASE)
_PART_SPLIT = re.compile(r"\s*,\s*|\s+(?:and|&)\s+", re.IGNORECASE)
_BOUNDARY = re.compile(r"[.,;:!?()\[\]{}]")

_RELATIONAL_WORDS = re.compile(
    r"\b(?:connect|connection|relationship|related|relates|compare|between|versus|vs)\b", re.IGNORECASE
)
_PLAN_RELATIONAL_WORDS = re.compile(
    r"\b(?:connect|connection|relationship|related|relates|compare|between)\b", re.IGNORECASE
)
_QUESTION_START = re.compile(r"^(?:what|which|how|why)\b", re.IGNORECASE)


def apply_rule(rule: RelationRule, text: str) -> list[str]:
    """Return the non-empty capture groups a rule finds in text."""
    if rule.find_all:
        return [match.group(1) for match in rule.pattern.finditer(text) if match.group(1)]
    match = rule.pattern.search(text)
    if not match:
        return []
    return [group for group in match.groups() if group]


def normalize_relation_mention(value: str) -> str:
    """
    Reduce one side of a relational phrase to its entity mention.

    Strips leading prepositions, question words, auxiliaries, articles and
    causal verbs, prefers a prepositional tail ("risk of lupus" -> "lupus"),
    and returns "" for generic mechanism phrases.
    """
    mention = sanitize_mention(normalize_display(value))
    if not mention:
        return ""
    for pattern in (
        _LEADING_PREPOSITION,
        _LEADING_QUESTION_AUX,
        _LEADING_QUESTION,
        _LEADING_AUX,
        _LEADING_ARTICLE,
        _LEADING_CAUSAL,
        _LEADING_TO,
    ):
        mention = pattern.sub("", mention, count=1)
    tail_match = _PREPOSITION_TAIL.search(mention)
    if tail_match:
        tail = sanitize_mention(tail_match.group(1))
        if len(tail) >= 3:
            mention = tail
    if is_generic_mechanism_mention(mention):
        return ""
    return mention


def _mention_parts(value: str) -> list[str]:
    raw = (value or "").strip()
    if not raw:
        return []
    parts = [part for part in (normalize_relation_mention(item) for item in _PART_SPLIT.split(raw)) if part]
    if len(parts) > 1:
        return parts
    single = normalize_relation_mention(raw)
    return [single] if single else []


def extract_structured_mentions(query: str) -> list[str]:
    """Mentions captured by the relation rules, in rule order (max 8)."""
    cleaned = collapse(query)
    if not cleaned:
        return []

    mentions: dict[str, None] = {}
    for rule in RELATION_RULES:
        for side in apply_rule(rule, cleaned):
            for mention in _mention_parts(side):
                if len(mention) < 2 or len(mention) > 90:
                    continue
                if len(split_tokens(mention)) > 6:
                    continue
                if is_generic_mechanism_mention(mention):
                    continue
                mentions.setdefault(mention)
    return list(mentions)[:MAX_STRUCTURED_MENTIONS]


def prune_subsumed_single_token_mentions(mentions: list[str]) -> list[str]:
    """
    Drop single-token mentions already covered by a multi-token mention.

    "arthritis" goes when "rheumatoid arthritis" is present; symbol-like
    tokens ("il6", "tnf-a", "CD4") are kept regardless.
    """
    if len(mentions) <= 1:
        return mentions
    normalized = [value for value in (sanitize_mention(item) for item in mentions) if value]
    multi = [value for value in normalized if len(split_tokens(value)) > 1]
    if not multi:
        return normalized

    kept = []
    for mention in normalized:
        tokens = split_tokens(mention)
        if len(tokens) != 1:
            kept.append(mention)
            continue
        if should_preserve_single_token_mention(mention):
            kept.append(mention)
            continue
        token_pattern = re.compile(rf"(?:^|\s){re.escape(tokens[0])}(?:\s|$)", re.IGNORECASE)
        if not any(token_pattern.search(value) for value in multi):
            kept.append(mention)
    return kept


def score_mention(mention: str) -> float:
    """Heuristic relevance: short, alphanumeric-dense, symbol-like mentions first."""
    parts = split_tokens(mention)
    if not parts:
        return -100.0
    compact_value = alnum_compact(mention)
    alpha_numeric = len(compact_value)

    score = 0.0
    if len(parts) == 1:
        score += 1.6 if alpha_numeric >= 4 else 0.3
    elif len(parts) == 2:
        score += 1.8
    elif len(parts) <= 4:
        score += 1.2
    else:
        score += 0.5

    if 0 < len(compact_value) <= 10:
        score += 0.4
    if re.search(r"[0-9+\-]", mention):
        score += 0.55
    if len(mention) > 60:
        score -= 1.3
    score += min(0.9, alpha_numeric / 26)
    return score


def _signal_tokens(query: str) -> list[str]:
    found = []
    for raw in query.split():
        if len(raw) < 2:
            continue
        token = sanitize_mention(raw)
        compact_token = alnum_compact(token)
        if len(compact_token) < 3 or len(compact_token) > 18:
            continue
        has_signal = (
            any(char.isdigit() for char in compact_token)
            or any(char.isupper() for char in raw)
            or "-" in raw
            or "+" in raw
        )
        if has_signal:
            found.append(token)
    return found


def _tail_mentions(tokens: list[str]) -> list[str]:
    found = []
    for index, raw in enumerate(tokens):
        token = sanitize_mention(raw)
        if len(token) < 4:
            continue
        if index == len(tokens) - 1 or len(token) >= 8:
            found.append(token)
    max_tail = min(4, max(2, len(tokens) - 1))
    for size in range(2, max_tail + 1):
        tail = sanitize_mention(" ".join(tokens[-size:]))
        if len(tail) >= 3:
            found.append(tail)
    return found


def extract_mentions(query: str) -> list[str]:
    """
    Lexical mentions for a query, best first (max 10).

    Structured relation mentions and symbol-like tokens are preferred; when
    neither exists, long tokens and trailing n-grams of the query are used.
    """
    normalized = sanitize_mention(_BOUNDARY.sub(" ", normalize_display(query)))
    if not normalized:
        return []
    tokens = [token for token in normalized.split(" ") if len(token) >= 2]
    if not tokens:
        return []

    candidates: dict[str, None] = {}
    for mention in extract_structured_mentions(query):
        candidates.setdefault(mention)
    for mention in _signal_tokens(query):
        candidates.setdefault(mention)
    if not candidates:
        for mention in _tail_mentions(tokens):
            candidates.setdefault(mention)

    mentions = [
        value
        for value in (sanitize_mention(item) for item in prune_subsumed_single_token_mentions(list(candidates)))
        if len(value) >= 3
        and not _QUESTION_START.match(value)
        and not _RELATIONAL_WORDS.search(value)
        and not is_generic_mechanism_mention(value)
    ]
    mentions = list(dict.fromkeys(mentions))
    mentions.sort(key=score_mention, reverse=True)
    return mentions[:MAX_MENTIONS]


def mentions_from_query_plan(query: str, plan: ResolvedQueryPlan | None) -> list[str]:
    """Mentions seeded from an externally produced semantic plan (max 8)."""
    if plan is None:
        return []

    candidates: dict[str, None] = {}
    for anchor in plan.anchors:
        mention = sanitize_mention(anchor.mention)
        if mention:
            candidates.setdefault(mention)
        if anchor.entity_type == "disease":
            canonical = sanitize_mention(anchor.name)
            if canonical:
                candidates.setdefault(canonical)
    for unresolved in plan.unresolved_mentions:
        mention = sanitize_mention(unresolved)
        if not mention:
            continue
        if len(mention) > 48 or len(split_tokens(mention)) > 6:
            continue
        if re.search(r"\b(?:connect|connection|relationship|related|relates|compare|between|vs|versus)\b", mention):
            continue
        candidates.setdefault(mention)
    for mention in extract_structured_mentions(query):
        if not is_generic_mechanism_mention(mention):
            candidates.setdefault(mention)

    return [
        item
        for item in (value.strip() for value in prune_subsumed_single_token_mentions(list(candidates)))
        if len(item) >= 3 and not _PLAN_RELATIONAL_WORDS.search(item) and not is_generic_mechanism_mention(item)
    ][:MAX_PLAN_MENTIONS]
