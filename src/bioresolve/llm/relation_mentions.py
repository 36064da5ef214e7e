"""
Fast relation-anchor extraction with a small model.

Best effort: returns [] when the LLM is missing, rate limited, slow or wrong.
"""

from __future__ import annotations

import asyncio
import logging
import re

from .client import ResolverLLM
from .prompts import format_relation_mentions_messages
from .rate_limit import CircuitBreaker
from .schemas import RelationMentions

logger = logging.getLogger(__name__)

DEFAULT_MAX_MENTIONS = 6
DEFAULT_TIMEOUT_SECONDS = 1.8


def clean_mention(value: str) -> str:
    value = re.sub(r"\s+", " ", value)
    return re.sub(r"^[`\"'\s]+|[`\"'\s]+$", "", value).strip()


def clean_mentions(values: list[str], max_mentions: int) -> list[str]:
    """Strip quotes, drop implausible lengths, dedupe case-insensitively."""
    seen: set[str] = set()
    mentions = []
    for value in values:
        mention = clean_mention(str(value or ""))
        if len(mention) < 2 or len(mention) > 90:
            continue
        if len(mention.split()) > 6:
            continue
        key = mention.lower()
        if key in seen:
            continue
        seen.add(key)
        mentions.append(mention)
        if len(mentions) >= max_mentions:
            break
    return mentions


async def extract_relation_mentions_fast(
    query: str,
    llm: ResolverLLM | None,
    breaker: CircuitBreaker | None = None,
    max_mentions: int = DEFAULT_MAX_MENTIONS,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[str]:
    """
    Ask the nano model for the entity mentions a relational query links.

    max_mentions is clamped to 1-10 and timeout to 0.7-6 s.
    """
    query = query.strip()
    if not query or llm is None:
        return []
    if breaker is not None and breaker.is_open():
        return []

    max_mentions = max(1, min(10, max_mentions))
    timeout = max(0.7, min(6.0, timeout))
    try:
        parsed = await llm.create_structured(
            format_relation_mentions_messages(query, max_mentions),
            RelationMentions,
            model=llm.config.nano_model,
            max_tokens=llm.config.relation_mentions_max_tokens,
            timeout=timeout,
        )
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.debug("relation mention extraction failed: %s", exc)
        if breaker is not None:
            breaker.record_failure(exc)
        return []

    if breaker is not None:
        breaker.record_success()
    return clean_mentions(parsed.mentions, max_mentions)
