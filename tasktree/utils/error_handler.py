"""
Error handling utilities
"""

from typing import Optional, Any, Tuple
from tasktree.models.response import ErrorResponse
from tasktree.utils.logger import logger


class TaskTreeError(Exception):
    """Base exception for task tree errors"""
    
    error_code = "task_tree_error"
    status_code = 500
    
    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(TaskTreeError):
    """Malformed input; raised before any mutation"""
    error_code = "validation_error"
    status_code = 400


class NotFoundError(TaskTreeError):
    """Task does not exist or belongs to another owner"""
    error_code = "not_found"
    status_code = 404


class AuthenticationError(TaskTreeError):
    """Caller identity is missing"""
    error_code = "unauthorized"
    status_code = 401


class InvariantViolation(TaskTreeError):
    """Internal consistency check failure; reported, never raised to callers"""
    error_code = "invariant_violation"


def report_violation(violation: InvariantViolation) -> None:
    """Log an invariant violation found by a defensive check"""
    logger.error(f"Invariant violation: {violation.message}")


def handle_error(error: Exception) -> Tuple[int, ErrorResponse]:
    """
    Handle error and return status code with a client-safe body
    
    Args:
        error: Exception to handle
        
    Returns:
        Tuple of HTTP status code and ErrorResponse
    """
    if isinstance(error, (ValidationError, NotFoundError, AuthenticationError)):
        logger.warning(f"Request rejected ({error.error_code}): {error.message}")
        return error.status_code, ErrorResponse(
            error=error.error_code,
            message=error.message,
            details=error.details,
        )
    
    logger.error(f"Error occurred: {error}", exc_info=error)
    
    # Generic error message, no internals leaked
    return 500, ErrorResponse(
        error="internal_error",
        message="An unexpected error occurred. Please try again later.",
    )

