"""
Error taxonomy for the analysis workflow.

Every failure the workflow can surface is one of four kinds. Each carries an
HTTP status so the API layer can translate it without knowing the cause.
"""

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "WORKFLOW_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(WorkflowError):
    """A transition precondition or field-completeness rule was violated."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})},
        )
        self.field = field


class GenerationError(WorkflowError):
    """The generator call failed or returned unusable data."""

    status_code = 502

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="GENERATION_ERROR",
            details={"operation": operation, "retryable": True, **(details or {})},
        )
        self.operation = operation


class PersistenceError(WorkflowError):
    """The storage collaborator rejected or failed a read/write."""

    status_code = 503

    def __init__(
        self,
        message: str,
        collection: str = "unknown",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="PERSISTENCE_ERROR",
            details={"collection": collection, **(details or {})},
        )
        self.collection = collection


class NotFoundError(WorkflowError):
    """A referenced workflow, session, report or submission no longer exists."""

    status_code = 404

    def __init__(
        self,
        message: str,
        collection: str = "unknown",
        key: str = "",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            details={"collection": collection, "key": key, **(details or {})},
        )
        self.collection = collection
        self.key = key
