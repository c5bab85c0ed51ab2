class RepositoryError(Exception):
    """Base exception for all repository-related errors."""


class NotFoundError(RepositoryError):
    """Raised when a record looked up by id or key does not exist."""


class ConflictError(RepositoryError):
    """Raised when a write would violate a uniqueness rule."""


class InvalidTransitionError(RepositoryError):
    """Raised when a state machine transition is not allowed."""


class BackendUnavailableError(RepositoryError):
    """Raised when the relational store cannot be reached."""


class ValidationError(RepositoryError):
    """Raised when creation or update input is malformed."""


class UnsupportedQueryError(RepositoryError):
    """Raised when a raw SQL query is sent to a backend that cannot run it."""
