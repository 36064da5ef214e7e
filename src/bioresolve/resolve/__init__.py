"""
Query-to-entity resolution modules.

Resolves a free-text biomedical question to canonical entities:
- Mentions → short candidate strings (relation rules, signal tokens, tails)
- Candidates → disease/target/drug rows from the search backends, scored lexically
- Diseases → ranked list plus zero or one primary disease
- Anchors → LLM disambiguation over supplied ids, or the lexical fallback
- Plan → merged with an independent semantic plan and post-filtered

Each anchor carries:
- Canonical ID and name
- Confidence score (0.2-0.98)
- Source (opentargets or chembl)

The entry point lives in bioresolve.resolve.engine; it is not imported here so
that the LLM layer can depend on the data model without a cycle.
"""

from bioresolve.resolve.schemas import (
    DiseaseCandidate,
    MentionCandidate,
    QueryEntityBundle,
    QueryPlanAnchor,
    QueryPlanConstraint,
    QueryPlanFollowup,
    RankedDiseaseCandidate,
    ResolvedQueryPlan,
)
from bioresolve.resolve.similarity import similarity
from bioresolve.resolve.text import normalize

__all__ = [
    "DiseaseCandidate",
    "MentionCandidate",
    "QueryEntityBundle",
    "QueryPlanAnchor",
    "QueryPlanConstraint",
    "QueryPlanFollowup",
    "RankedDiseaseCandidate",
    "ResolvedQueryPlan",
    "normalize",
    "similarity",
]
