"""Core errors for Knowledge Arena.

Arena file schemas live in ``knowledge_arena.core.config``; they depend on the
engines, so they are not re-exported here.
"""

from knowledge_arena.core.errors import (
    ConfigurationError,
    EngineError,
    InvalidInputError,
    NonConvergenceError,
    UnknownSourceError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "EngineError",
    "InvalidInputError",
    "NonConvergenceError",
    "UnknownSourceError",
    "ValidationError",
]
