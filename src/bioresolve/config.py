"""
Configuration management for bioresolve.

Uses pydantic-settings for environment variable loading and validation.
"""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolverThresholds(BaseModel):
    """Tuned cut points used by disease selection and the LLM skip heuristic.

    The defaults were tuned by hand against observed queries. They are exposed
    here so they can be overridden (e.g. BIORESOLVE_THRESHOLDS__CLEAR_LEADER_MARGIN=1.2)
    rather than edited in place.
    """

    # Deterministic disease selection
    clear_leader_min_score: float = Field(default=2.2, description="Minimum score for a clear top disease")
    clear_leader_margin: float = Field(default=1.4, description="Required lead over the runner-up")
    weak_single_candidate_score: float = Field(
        default=3.1,
        description="Below this, a lone disease hit is rejected when non-disease signals dominate",
    )
    weak_top_disease_score: float = Field(
        default=3.3,
        description="Below this, selection is nulled when a strong non-disease anchor exists",
    )
    strong_non_disease_confidence: float = Field(default=0.66)

    # LLM skip heuristic
    skip_single_disease_score: float = Field(default=3.2)
    skip_max_query_tokens: int = Field(default=4)
    skip_max_rows: int = Field(default=3)

    # Disease anchor revalidation after the model call
    disease_anchor_min_similarity: float = Field(default=0.42)
    disease_anchor_low_conf_similarity: float = Field(default=0.56)
    disease_anchor_low_confidence: float = Field(default=0.64)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BIORESOLVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Search backends
    opentargets_url: str = Field(
        default="https://api.platform.opentargets.org/api/v4/graphql",
        description="OpenTargets Platform GraphQL endpoint",
    )
    chembl_url: str = Field(
        default="https://www.ebi.ac.uk/chembl/api/data",
        description="ChEMBL REST API base URL",
    )
    search_timeout_seconds: float = Field(default=5.0, description="Deadline per search call")
    search_limit: int = Field(default=8, description="Rows requested per search call")

    # Upstream collaborators
    plan_timeout_seconds: float = Field(default=14.0, description="Deadline for the semantic planner")
    relation_mentions_timeout_seconds: float = Field(default=1.8)

    # Bundle cache
    cache_ttl_seconds: float = Field(default=300.0)
    cache_max_entries: int = Field(default=500)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )

    thresholds: ResolverThresholds = Field(default_factory=ResolverThresholds)

    @property
    def bundle_cache_ttl_seconds(self) -> float:
        """Bundles go stale faster than raw search results."""
        return min(self.cache_ttl_seconds, 120.0)

    @property
    def bundle_cache_max_entries(self) -> int:
        return min(self.cache_max_entries, 500)


# Global settings instance
settings = Settings()
