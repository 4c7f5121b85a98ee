"""
Sequence engine error taxonomy.

Every error carries a ``code`` matching ``src.utils.error_handling.ERROR_CODES``
so the request boundary can render it without inspecting the class.
"""

from typing import Any, Dict, Optional


class SequenceEngineError(Exception):
    """Base class for errors raised by the sequence engine."""
    code = 'INTERNAL_ERROR'
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SequenceEngineError):
    """Malformed sequence or step payload."""
    code = 'VALIDATION_ERROR'


class NotFoundError(SequenceEngineError):
    """Sequence, step, assignment, activity or prospect does not exist."""
    code = 'NOT_FOUND'
    
    def __init__(self, resource: str, resource_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} not found"
        if resource_id:
            message += f" with id: {resource_id}"
        super().__init__(message, details)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(SequenceEngineError):
    """Operation collides with existing state (double scheduling, concurrent update)."""
    code = 'CONFLICT'


class InvalidStateError(ConflictError):
    """Transition not allowed from the assignment's current status."""
    code = 'INVALID_STATE'


class InternalError(SequenceEngineError):
    """Storage failure."""
    code = 'INTERNAL_ERROR'
