"""Domain errors."""

from typing import Any


class QuarryError(Exception):
    """Base class for all quarry errors."""


class ValidationError(QuarryError):
    """Malformed input at the boundary (parameters, ids, attributes)."""


class ConfigurationError(QuarryError):
    """Registration or descriptor setup that cannot work."""


class PersistenceError(QuarryError):
    """The store or the entity schema rejected an insert or update."""

    def __init__(self, message: str, errors: list[Any] | None = None) -> None:
        """Initialize the persistence error."""
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(QuarryError):
    """A strict lookup found no visible record."""
