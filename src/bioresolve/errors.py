"""
Exception types for bioresolve.

None of these escape resolve_query_entities_bundle; they exist so the layers
below it can fail loudly and the resolver can decide how to degrade.
"""


class ResolverError(Exception):
    """Base class for resolver errors."""


class SearchBackendError(ResolverError):
    """A search collaborator failed (transport error, non-2xx, malformed payload)."""


class LLMUnavailableError(ResolverError):
    """No LLM client is configured or the circuit breaker is open."""


class ResolutionParseError(ResolverError):
    """The model returned output that does not match the expected schema."""
