"""
Configuration for the LLM-assisted resolution steps.

Targets any OpenAI-compatible endpoint (OpenAI itself by default).
All settings configurable via environment variables; see .env.example.
"""

import os
from dataclasses import dataclass, field


def _env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    val = os.getenv(key)
    return float(val) if val else default


def _env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    val = os.getenv(key)
    return int(val) if val else default


@dataclass
class LLMConfig:
    """Configuration for the resolver's LLM calls."""

    api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    base_url: str | None = field(default_factory=lambda: os.getenv("OPENAI_BASE_URL"))

    # Entity disambiguation and disease arbitration
    small_model: str = field(
        default_factory=lambda: os.getenv("OPENAI_SMALL_MODEL", "gpt-5-mini")
    )
    # Fast relation-mention extraction
    nano_model: str = field(
        default_factory=lambda: os.getenv("OPENAI_NANO_MODEL", "gpt-5-nano")
    )

    # instructor.Mode member name; TOOLS works with OpenAI, JSON_SCHEMA with llama.cpp
    instructor_mode: str = field(
        default_factory=lambda: os.getenv("BIORESOLVE_INSTRUCTOR_MODE", "TOOLS")
    )

    temperature: float | None = field(
        default_factory=lambda: float(os.environ["BIORESOLVE_LLM_TEMPERATURE"])
        if os.getenv("BIORESOLVE_LLM_TEMPERATURE")
        else None
    )
    resolution_max_tokens: int = field(
        default_factory=lambda: _env_int("BIORESOLVE_RESOLUTION_MAX_TOKENS", 2048)
    )
    relation_mentions_max_tokens: int = field(
        default_factory=lambda: _env_int("BIORESOLVE_RELATION_MENTIONS_MAX_TOKENS", 180)
    )

    # -------------------------------------------------------------------------
    # Deadlines (seconds)
    # -------------------------------------------------------------------------
    resolution_timeout_seconds: float = field(
        default_factory=lambda: _env_float("BIORESOLVE_RESOLUTION_TIMEOUT", 6.5)
    )
    arbitration_timeout_seconds: float = field(
        default_factory=lambda: _env_float("BIORESOLVE_ARBITRATION_TIMEOUT", 6.5)
    )

    # Total attempts instructor makes per call; the resolver itself never retries
    max_retries: int = field(default_factory=lambda: _env_int("BIORESOLVE_LLM_MAX_RETRIES", 1))

    @property
    def enabled(self) -> bool:
        """True when an API key is configured."""
        return bool(self.api_key)

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if not self.api_key:
            errors.append("OPENAI_API_KEY not set (LLM-assisted resolution disabled)")
        if self.resolution_timeout_seconds <= 0:
            errors.append("BIORESOLVE_RESOLUTION_TIMEOUT must be positive")
        return errors

    def summary(self) -> str:
        """Return a summary of current configuration."""
        return (
            f"Endpoint: {self.base_url or 'https://api.openai.com/v1'}\n"
            f"Resolution: {self.small_model} (timeout={self.resolution_timeout_seconds}s)\n"
            f"Relation mentions: {self.nano_model}\n"
            f"Mode: {self.instructor_mode}, enabled={self.enabled}"
        )
