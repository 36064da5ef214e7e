"""
Data model for query-to-entity resolution.

MentionCandidate is a plain dataclass (search rows, never serialized).
Plan and bundle types are pydantic models so they can be exchanged with
integrators as camelCase JSON (model_dump(by_alias=True)).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CandidateEntityType = Literal["disease", "target", "drug"]
CandidateSource = Literal["opentargets", "chembl"]
ConstraintPolarity = Literal["include", "avoid", "optimize"]
MentionType = Literal[
    "disease",
    "target",
    "drug",
    "intervention",
    "pathway",
    "protein",
    "molecule",
    "effect",
    "phenotype",
    "anatomy",
    "unknown",
]

DEFAULT_INTENT = "multihop-discovery"

MAX_PLAN_ANCHORS = 20
MAX_PLAN_CONSTRAINTS = 10
MAX_PLAN_FOLLOWUPS = 10
MAX_PLAN_UNRESOLVED = 12


@dataclass(frozen=True)
class MentionCandidate:
    """One search hit for one mention."""
    mention: str
    entity_type: CandidateEntityType
    id: str
    name: str
    description: str | None = None
    score: float = 0.0
    source: CandidateSource = "opentargets"

    @property
    def key(self) -> str:
        return f"{self.entity_type}:{self.id}"

    def with_score(self, score: float) -> MentionCandidate:
        return replace(self, score=score)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueryPlanAnchor(_CamelModel):
    """A mention resolved to a canonical entity."""
    mention: str
    requested_type: MentionType = "unknown"
    entity_type: CandidateEntityType
    id: str
    name: str
    description: str | None = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: CandidateSource = "opentargets"

    @property
    def key(self) -> str:
        return f"{self.entity_type}:{self.id}"


class QueryPlanConstraint(_CamelModel):
    text: str
    polarity: ConstraintPolarity


class QueryPlanFollowup(_CamelModel):
    question: str
    reason: str = ""
    seed_entity_ids: list[str] = Field(default_factory=list)


class ResolvedQueryPlan(_CamelModel):
    """Structured plan for the downstream evidence graph builder."""
    query: str
    intent: str = DEFAULT_INTENT
    anchors: list[QueryPlanAnchor] = Field(default_factory=list)
    constraints: list[QueryPlanConstraint] = Field(default_factory=list)
    unresolved_mentions: list[str] = Field(default_factory=list)
    followups: list[QueryPlanFollowup] = Field(default_factory=list)
    rationale: str = ""


class DiseaseCandidate(_CamelModel):
    id: str
    name: str
    description: str | None = None


class RankedDiseaseCandidate(DiseaseCandidate):
    """Disease candidate carrying its transient ranking score."""
    score: float

    def public(self) -> DiseaseCandidate:
        """Strip the ranking score before the candidate leaves the resolver."""
        return DiseaseCandidate(id=self.id, name=self.name, description=self.description)


class QueryEntityBundle(_CamelModel):
    """Full output of one resolution call. Treat as read-only once returned."""
    query: str
    query_plan: ResolvedQueryPlan
    selected_disease: DiseaseCandidate | None = None
    disease_candidates: list[DiseaseCandidate] = Field(default_factory=list)
    rationale: str = ""
    openai_calls: int = Field(default=0, alias="openAiCalls")

    @classmethod
    def empty(cls, query: str, rationale: str = "") -> QueryEntityBundle:
        return cls(
            query=query,
            query_plan=ResolvedQueryPlan(query=query, rationale=rationale),
            rationale=rationale,
        )
