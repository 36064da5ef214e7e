"""
LLM layer for bioresolve.

Every call is schema-constrained (Instructor + pydantic), time-boxed, and
guarded by an explicitly passed rate-limit CircuitBreaker:
- Disambiguation: assign mentions to supplied candidate ids (small model)
- Disease arbitration: break ties between close disease candidates
- Relation mentions: fast anchor extraction for relational queries (nano model)

Usage:
    from bioresolve.llm import CircuitBreaker, create_client

    llm = create_client()          # None when OPENAI_API_KEY is unset
    breaker = CircuitBreaker()
"""

from .client import ResolverClient, ResolverLLM, create_client
from .config import LLMConfig
from .disease_arbiter import DiseaseArbitration, choose_best_disease_candidate
from .prompts import (
    DISEASE_ARBITRATION_SYSTEM_PROMPT,
    RESOLUTION_SYSTEM_PROMPT,
    format_disease_arbitration_messages,
    format_relation_mentions_messages,
    format_resolution_messages,
)
from .rate_limit import CircuitBreaker, backoff_seconds, is_rate_limit_error
from .relation_mentions import extract_relation_mentions_fast
from .schemas import (
    CandidateRow,
    DiseaseSelection,
    MentionCandidates,
    ModelAnchor,
    ModelConstraint,
    RelationMentions,
    ResolutionModelResult,
)

__all__ = [
    # Config
    "LLMConfig",
    # Schemas
    "CandidateRow",
    "MentionCandidates",
    "ModelAnchor",
    "ModelConstraint",
    "ResolutionModelResult",
    "DiseaseSelection",
    "RelationMentions",
    # Clients
    "ResolverLLM",
    "ResolverClient",
    "create_client",
    # Rate limiting
    "CircuitBreaker",
    "is_rate_limit_error",
    "backoff_seconds",
    # Collaborators
    "DiseaseArbitration",
    "choose_best_disease_candidate",
    "extract_relation_mentions_fast",
    # Prompts
    "RESOLUTION_SYSTEM_PROMPT",
    "DISEASE_ARBITRATION_SYSTEM_PROMPT",
    "format_resolution_messages",
    "format_disease_arbitration_messages",
    "format_relation_mentions_messages",
]
