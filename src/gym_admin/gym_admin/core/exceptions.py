class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConflictError(ValidationError):
    """Raised when another active event already occupies the slot."""

    def __init__(self, message: str, *, existing=None):
        super().__init__(message)
        self.existing = existing


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class StoreError(DomainError):
    """Raised when the store is unreachable or fails unexpectedly.

    ``operation`` is ``"load"`` for reads and ``"save"`` for writes so callers
    can tell "could not load" apart from "could not save".
    """

    def __init__(self, message: str, *, operation: str = "save"):
        super().__init__(message)
        self.operation = operation
