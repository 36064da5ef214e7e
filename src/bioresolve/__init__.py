"""
bioresolve: biomedical query-to-entity resolution

Resolves a free-text biomedical question into a structured query plan:

    query → mentions → candidate search → disease ranking → (LLM) disambiguation → plan merge

Core constraints:
- Never raises to the caller; every failure degrades to the lexical path
- Search backends and the LLM are injected collaborators
- LLM output is schema-validated and only ever references supplied candidate ids
"""

__version__ = "0.1.0"
