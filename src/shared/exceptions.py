"""Custom exceptions for the expense tracker application."""

from typing import List, Optional


class ExpenseTrackerException(Exception):
    """Base exception for all expense tracker errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ExpenseTrackerException):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(ExpenseTrackerException):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ConflictError(ExpenseTrackerException):
    """Raised when a workflow is already running or blocked by an open edit."""

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, status_code=409)


class ClassificationUnavailable(ExpenseTrackerException):
    """Raised when the classification API cannot produce a usable answer."""

    def __init__(self, message: str = "Classification service unavailable"):
        super().__init__(message, status_code=502)


class DatabaseError(ExpenseTrackerException):
    """Raised when database operations fail."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500)


class PartialArchivalError(ExpenseTrackerException):
    """
    Raised when an archive record was written but some expenses
    could not be deleted afterwards.
    """

    def __init__(
        self,
        archive_id: str,
        deleted_count: int,
        failed_ids: List[str],
        message: Optional[str] = None
    ):
        self.archive_id = archive_id
        self.deleted_count = deleted_count
        self.failed_ids = list(failed_ids)
        super().__init__(
            message or (
                f"Archive {archive_id} saved but {len(self.failed_ids)} "
                f"expense(s) could not be cleared"
            ),
            status_code=500
        )
