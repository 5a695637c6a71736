"""Clinical analysis workflow core."""

from workflow.errors import (
    GenerationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    WorkflowError,
)

__all__ = [
    "GenerationError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "WorkflowError",
]
