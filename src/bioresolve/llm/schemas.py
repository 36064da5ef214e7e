"""
Pydantic schemas for LLM output.

instructor validates every response against one of these; a response that
does not fit is rejected rather than coerced.
"""

from typing import Literal

from pydantic import BaseModel, Field

from bioresolve.resolve.schemas import CandidateEntityType, ConstraintPolarity


class ModelAnchor(BaseModel):
    """One mention assigned to one of the supplied candidate ids."""
    mention: str = Field(..., description="Mention text from the query")
    entity_type: CandidateEntityType = Field(..., description="Type of the chosen candidate")
    id: str = Field(..., description="Candidate id, copied exactly from the supplied list")
    confidence: float = Field(..., description="Confidence between 0 and 1")


class ModelConstraint(BaseModel):
    text: str
    polarity: ConstraintPolarity


class ResolutionModelResult(BaseModel):
    """Entity disambiguation output."""
    intent: str = Field(..., description="Short label for what the user wants")
    anchors: list[ModelAnchor] = Field(default_factory=list)
    primary_disease_id: str | None = Field(
        None, description="Id of the disease the query is mainly about, if any"
    )
    unresolved_mentions: list[str] = Field(default_factory=list)
    constraints: list[ModelConstraint] = Field(default_factory=list)
    rationale: str = Field("", description="One or two sentences")


class DiseaseSelection(BaseModel):
    """Disease arbitration output."""
    selected_id: str = Field(..., description="Id of the single best matching candidate")
    rationale: str = ""


class RelationMentions(BaseModel):
    """Fast relation-anchor extraction output."""
    mentions: list[str] = Field(default_factory=list)


class CandidateRow(BaseModel):
    """Candidate row as shown to the model."""
    entity_type: Literal["disease", "target", "drug"]
    id: str
    name: str
    description: str | None = None
    score: float


class MentionCandidates(BaseModel):
    mention: str
    candidates: list[CandidateRow] = Field(default_factory=list)
