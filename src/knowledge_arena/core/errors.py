"""Custom exceptions for the rating and attribution engines."""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for engine errors with optional suggestions."""

    label = "Engine Error"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[{self.label}] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class InvalidInputError(EngineError, ValueError):
    """Error when a caller passes state the engine cannot accept.

    These only arise from caller bugs: the engine's own outputs always
    satisfy its invariants.
    """

    label = "Invalid Input"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"Invalid value for '{field}': {reason}")


class NonConvergenceError(EngineError, ArithmeticError):
    """Error when the volatility solver exhausts its iteration budget."""

    label = "Non-Convergence"

    def __init__(self, stage: str, steps: int) -> None:
        self.stage = stage
        self.steps = steps
        super().__init__(
            f"Volatility {stage} did not converge after {steps} steps",
            "Check the player and opponent ratings for extreme values.",
        )


class ConfigurationError(EngineError):
    """Base exception for arena file errors."""

    label = "Configuration Error"


class ValidationError(ConfigurationError):
    """Error when arena file validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class UnknownSourceError(ConfigurationError):
    """Error when a match or lookup references a source that was never registered."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(
            f"Unknown source '{slug}'",
            "Declare the source under 'sources' before referencing it.",
        )
