"""
Lexical similarity between a mention (or query) and a candidate name.
"""

from bioresolve.resolve.text import alnum_compact, initials, normalize, tokenize

PREFIX_SCORE = 0.82
INITIALS_SCORE = 0.94


def _initials_match(short_tokens: list[str], long_tokens: list[str]) -> bool:
    if len(short_tokens) != 1:
        return False
    token = alnum_compact(short_tokens[0])
    expansion = initials(long_tokens)
    return bool(token) and bool(expansion) and token == expansion


def similarity(a: str, b: str) -> float:
    """
    Score how well two strings name the same thing, in [0, 1].

    Exact match scores 1, prefix containment 0.82, an abbreviation matching the
    initials of the other side ("cv" / "cardiovascular disease") 0.94. Otherwise
    the harmonic mean of token precision and recall; 0 with no shared tokens.
    """
    left = normalize(a)
    right = normalize(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left.startswith(right) or right.startswith(left):
        return PREFIX_SCORE

    left_tokens = tokenize(left)
    right_tokens = tokenize(right)
    if _initials_match(left_tokens, right_tokens) or _initials_match(right_tokens, left_tokens):
        return INITIALS_SCORE

    right_set = set(right_tokens)
    left_set = set(left_tokens)
    shared_left = sum(1 for token in left_tokens if token in right_set)
    shared_right = sum(1 for token in right_tokens if token in left_set)
    if shared_left == 0:
        return 0.0
    precision = shared_left / max(1, len(left_tokens))
    recall = shared_right / max(1, len(right_tokens))
    return (2 * precision * recall) / max(0.001, precision + recall)
