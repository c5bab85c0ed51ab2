class ComparisonError(Exception):
    """Raised when a document comparison fails."""


class ComparisonValidationError(ComparisonError):
    """Raised when the comparison result fails domain validation."""


class ComparisonNetworkError(ComparisonError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
