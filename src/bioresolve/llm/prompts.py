"""
Prompt templates for the resolver's LLM calls.
"""

import json

from bioresolve.llm.schemas import MentionCandidates

RESOLUTION_SYSTEM_PROMPT = (
    "Resolve biomedical entities from candidate lists. "
    "Use only provided candidate IDs. "
    "Identify disease/target/drug anchors and optionally primary_disease_id. "
    "If query has no clear disease concept, keep disease anchors empty."
)

DISEASE_ARBITRATION_SYSTEM_PROMPT = (
    "You are a biomedical disease entity resolver. "
    "Select the single best matching disease candidate for the user query. "
    "Use semantic intent, synonyms, and translational context. "
    "Return only the schema fields."
)


def relation_mentions_system_prompt(max_mentions: int) -> str:
    return (
        "Extract relation anchors from the biomedical question. "
        "Return only concrete entity mentions suitable for resolver lookup. "
        "Keep disease/protein/drug/biological-entity anchors; avoid generic phrase-only mentions. "
        "Do not add entities not present in the query text. "
        f"Return up to {max_mentions} mentions."
    )


def format_resolution_messages(query: str, mentions: list[MentionCandidates]) -> list[dict]:
    """
    Format messages for entity disambiguation.

    Args:
        query: The user query
        mentions: Candidate rows grouped by mention

    Returns:
        List of message dicts for the chat API
    """
    payload = {"query": query, "mentions": [item.model_dump() for item in mentions]}
    return [
        {"role": "system", "content": RESOLUTION_SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(payload, indent=2)},
    ]


def format_disease_arbitration_messages(query: str, candidates: list[dict]) -> list[dict]:
    payload = {"query": query, "candidates": candidates}
    return [
        {"role": "system", "content": DISEASE_ARBITRATION_SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(payload, indent=2)},
    ]


def format_relation_mentions_messages(query: str, max_mentions: int) -> list[dict]:
    return [
        {"role": "system", "content": relation_mentions_system_prompt(max_mentions)},
        {"role": "user", "content": query},
    ]
