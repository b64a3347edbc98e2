"""Error types and small numeric guards shared across the package."""

import logging

logger = logging.getLogger("edge_lab.error_handling")


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: Numerator value
        denominator: Denominator value
        default: Value to return if denominator is zero

    Returns:
        Result of division, or default if denominator is zero

    Example:
        >>> safe_divide(10, 2)
        5.0
        >>> safe_divide(10, 0, default=float('inf'))
        inf
    """
    if denominator == 0:
        logger.debug("Division by zero: %s/%s, returning %s", numerator, denominator, default)
        return default
    return numerator / denominator


class EdgeLabError(Exception):
    """Base exception for pricing and simulation errors."""
    pass


class DataValidationError(ValueError, EdgeLabError):
    """Raised when market inputs or data files fail validation.

    Inherits from ValueError so callers can treat it as a bad argument.
    """
    pass


class InsufficientDataError(EdgeLabError):
    """Raised when a data source holds too little to derive statistics."""
    pass


class ConfigurationError(EdgeLabError):
    """Raised when a simulation configuration is invalid.

    Attributes:
        problems: Every validation failure found, in field order
    """

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid simulation config: " + "; ".join(self.problems))
