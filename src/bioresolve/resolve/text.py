"""
Text normalization and lexical cues shared by the resolution stages.
"""

import re

_NON_WORD = re.compile(r"[^\w\s-]|_")
_NON_DISPLAY = re.compile(r"[^\w\s+\-]|_")
_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

GENE_SYMBOL_PATTERN = re.compile(r"^[a-z]{1,6}\d{1,3}[a-z]?$", re.IGNORECASE)

DISEASE_CUE_PATTERN = re.compile(
    r"\b(?:disease|disorder|syndrome|cancer|carcinoma|tumou?r|diabetes|obesity|lupus|arthritis|"
    r"sclerosis|colitis|asthma|fibrosis|infection|infarction|failure|insufficienc(?:y|ies)|"
    r"nephropathy|neuropathy|pregnancy|mesothelioma)\b",
    re.IGNORECASE,
)

MECHANISM_WORD_PATTERN = re.compile(
    r"\b(?:signaling|signal|pathway|pathways|mechanism|mechanistic|network|cascade|axis|events?)\b",
    re.IGNORECASE,
)
_GENERIC_TOKEN_PATTERN = re.compile(
    r"^(?:inflammatory|immune|metabolic|cellular|molecular|inflammation|signaling|signal|pathway|"
    r"pathways|mechanism|mechanistic|network|cascade|axis|events?)$",
    re.IGNORECASE,
)
_MECHANISM_TRIM_PATTERN = re.compile(
    r"\b(?:signaling|signal|pathway|pathways|axis|cascade|network|events?)\b", re.IGNORECASE
)

RELATION_INTENT_PATTERN = re.compile(
    r"\b(?:and|between|vs|versus|connection|relationship|related|relates|link|overlap|compare|"
    r"compared|associated|correlated)\b",
    re.IGNORECASE,
)

_MEASUREMENT_TERMS = ("measurement", "quantification", "metabolite ratio", "in a sample")


def collapse(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def normalize(value: str) -> str:
    """Lowercase, drop punctuation other than hyphens, collapse whitespace."""
    return collapse(_NON_WORD.sub(" ", value.lower()))


def normalize_display(value: str) -> str:
    """Like normalize() but keeps case and '+' (e.g. "CD4+")."""
    return collapse(_NON_DISPLAY.sub(" ", value))


def tokenize(value: str) -> list[str]:
    return [token for token in normalize(value).split(" ") if len(token) > 1]


def split_tokens(value: str) -> list[str]:
    return [token for token in value.split() if token]


def alnum_compact(value: str) -> str:
    return _NON_ALNUM.sub("", value).lower()


def initials(tokens: list[str]) -> str:
    return "".join(part[0] for part in (alnum_compact(token) for token in tokens) if part)


def compact(value: str, max_length: int = 180) -> str:
    """Collapse whitespace and truncate with an ellipsis."""
    value = collapse(value)
    if len(value) <= max_length:
        return value
    return f"{value[: max_length - 1]}…"


def sanitize_mention(value: str) -> str:
    return normalize(value)


def has_disease_cue(mention: str) -> bool:
    return bool(DISEASE_CUE_PATTERN.search(mention))


def has_relation_intent(query: str) -> bool:
    return bool(RELATION_INTENT_PATTERN.search(query))


def trim_mechanism_words(mention: str) -> str:
    """'il6 signaling pathway' -> 'il6'."""
    return collapse(_MECHANISM_TRIM_PATTERN.sub(" ", mention))


def is_measurement_like(name: str, description: str | None = None) -> bool:
    text = f"{name} {description or ''}".lower()
    return any(term in text for term in _MEASUREMENT_TERMS)


def is_gene_symbol_like(token: str) -> bool:
    return bool(GENE_SYMBOL_PATTERN.match(token))


def is_likely_symbol_mention(mention: str) -> bool:
    """Single short token such as 'tnf' or 'brca1'."""
    mention = mention.strip()
    if not mention or " " in mention:
        return False
    compact_mention = alnum_compact(mention)
    if not compact_mention or len(compact_mention) > 12:
        return False
    return any(char.isdigit() for char in compact_mention) or len(compact_mention) <= 6


def is_generic_mechanism_mention(mention: str) -> bool:
    """True for phrases like 'inflammatory signaling' that name no concrete entity."""
    normalized = sanitize_mention(mention)
    if not normalized:
        return False
    tokens = split_tokens(normalized)
    if not tokens or len(tokens) > 4:
        return False
    if has_disease_cue(normalized):
        return False
    if any(is_gene_symbol_like(token.replace("-", "")) for token in tokens):
        return False
    generic = sum(1 for token in tokens if _GENERIC_TOKEN_PATTERN.match(token))
    if generic == len(tokens):
        return True
    return generic >= max(1, len(tokens) - 1) and bool(MECHANISM_WORD_PATTERN.search(normalized))


def should_preserve_single_token_mention(mention: str) -> bool:
    """Single tokens that look like gene symbols survive subsumption pruning."""
    mention = mention.strip()
    if not mention:
        return False
    if re.search(r"[-+0-9]", mention):
        return True
    if re.fullmatch(r"[A-Z0-9-]{2,10}", mention):
        return True
    compact_mention = alnum_compact(mention)
    return bool(compact_mention) and is_gene_symbol_like(compact_mention)
