"""Custom exception classes for the application."""

from __future__ import annotations


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class InsufficientParticipantsError(ValidationError):
    """Raised when a bracket is requested for fewer than two participants."""

    def __init__(self, count=0, minimum=2):
        """Initialize the error."""
        super().__init__(
            f"A minimum of {minimum} teams is required to generate a bracket "
            f"({count} registered)."
        )
        self.count = count
        self.minimum = minimum


class ForbiddenError(AppError):
    """Raised when the acting user lacks the permission for an operation."""

    def __init__(self, message="You are not authorized to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class PersistenceError(AppError):
    """Raised when a Firestore read or write fails.

    ``stage`` names the step that failed (``read``, ``delete``, ``insert`` or
    ``commit``) and ``old_matches_removed`` tells the caller whether the
    previous bracket had already been deleted when the failure happened.
    """

    def __init__(
        self,
        message="A database error occurred. Please try again later.",
        stage=None,
        old_matches_removed=False,
    ):
        """Initialize the error."""
        super().__init__(message, 500)
        self.stage = stage
        self.old_matches_removed = old_matches_removed


class BracketInconsistentError(PersistenceError):
    """Raised when a chunked bracket replacement stops half way."""

    def __init__(self, stage=None, old_matches_removed=True):
        """Initialize the error."""
        super().__init__(
            "Bracket in inconsistent state, please retry.",
            stage=stage,
            old_matches_removed=old_matches_removed,
        )
